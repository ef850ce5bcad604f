"""Core types for the BitVM bridge client."""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Union

from solders.pubkey import Pubkey


class DerivedAddress(NamedTuple):
    """Program-derived address and the bump seed that produced it."""
    address: Pubkey
    bump: int


@dataclass(frozen=True)
class MintEvent:
    """Tokens minted on Solana for a verified BTC deposit."""
    to: str  # base58 recipient address
    value: int


@dataclass(frozen=True)
class BurnEvent:
    """Tokens burned on Solana to request a BTC withdrawal."""
    from_address: str  # base58 burner address
    btc_address: str
    value: int
    operator_id: int


BridgeEvent = Union[MintEvent, BurnEvent]


@dataclass
class BridgeState:
    """Bridge program state account."""
    owner: Pubkey
    mint_account: Pubkey
    skip_tx_verification: bool


@dataclass
class LightClientState:
    """BTC light client program state account."""
    latest_block_height: int
    latest_block_hash: bytes
    min_confirmations: int


@dataclass
class TxVerifiedState:
    """Per-transaction verification marker owned by the light client."""
    is_verified: bool


@dataclass
class SignatureInfo:
    """One entry of getSignaturesForAddress."""
    signature: str
    slot: int
    err: Optional[object] = None


@dataclass
class TransactionRecord:
    """The parts of a fetched transaction the client cares about."""
    signature: str
    slot: int
    logs: List[str] = field(default_factory=list)
    err: Optional[object] = None


@dataclass
class BtcTxProof:
    """Merkle inclusion proof for a BTC transaction output."""
    block_header: bytes  # 80 bytes
    tx_id: bytes  # 32 bytes
    tx_index: int
    merkle_proof: List[bytes]  # 32-byte hashes, leaf to root
    raw_tx: bytes
    output_index: int
    expected_amount: int  # satoshis
    expected_script_hash: bytes  # 32 bytes
