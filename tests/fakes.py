"""In-memory ledger used by the test suite."""

from collections import deque
from typing import Deque, Dict, List, Optional, Sequence, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.errors import TransportError
from core.types import SignatureInfo, TransactionRecord
from program.layouts import (
    BRIDGE_STATE_DISCRIMINATOR,
    BRIDGE_STATE_LAYOUT,
    LIGHT_CLIENT_STATE_DISCRIMINATOR,
    LIGHT_CLIENT_STATE_LAYOUT,
    TX_VERIFIED_STATE_DISCRIMINATOR,
    TX_VERIFIED_STATE_LAYOUT,
)


class FakeLedger:
    """Implements LedgerClient against dictionaries and counts every call."""

    def __init__(self):
        self.accounts: Dict[Pubkey, bytes] = {}
        self.transactions: Dict[str, TransactionRecord] = {}
        # Each get_signatures_for_address call pops one entry; a TransportError entry is raised
        self.signature_pages: Deque[Union[List[SignatureInfo], Exception]] = deque()
        # signature -> number of get_transaction calls that should still fail
        self.transaction_failures: Dict[str, int] = {}

        self.account_calls: List[Pubkey] = []
        self.signature_calls: List[dict] = []
        self.transaction_calls: List[str] = []
        self.sent: List[tuple] = []

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        self.account_calls.append(address)
        return self.accounts.get(address)

    async def get_signatures_for_address(
        self,
        address: Pubkey,
        until: Optional[str] = None,
        limit: int = 1000,
    ) -> List[SignatureInfo]:
        self.signature_calls.append({"address": address, "until": until, "limit": limit})
        if not self.signature_pages:
            return []
        page = self.signature_pages.popleft()
        if isinstance(page, Exception):
            raise page
        return list(page)

    async def get_transaction(self, signature: str) -> Optional[TransactionRecord]:
        self.transaction_calls.append(signature)
        remaining = self.transaction_failures.get(signature, 0)
        if remaining:
            self.transaction_failures[signature] = remaining - 1
            raise TransportError(f"simulated failure fetching {signature}")
        return self.transactions.get(signature)

    async def send_instructions(self, instructions: Sequence[Instruction], signer: Keypair) -> str:
        self.sent.append((list(instructions), signer))
        return f"sig{len(self.sent)}"

    def add_transaction(self, signature: str, slot: int, logs: List[str]) -> SignatureInfo:
        self.transactions[signature] = TransactionRecord(signature=signature, slot=slot, logs=logs)
        return SignatureInfo(signature=signature, slot=slot)


def bridge_state_data(mint_account: Pubkey, skip_tx_verification: bool, owner: Optional[Pubkey] = None) -> bytes:
    return BRIDGE_STATE_DISCRIMINATOR + BRIDGE_STATE_LAYOUT.build({
        "owner": bytes(owner or Keypair().pubkey()),
        "mint_account": bytes(mint_account),
        "skip_tx_verification": skip_tx_verification,
    })


def light_client_state_data(latest_block_height: int, min_confirmations: int) -> bytes:
    return LIGHT_CLIENT_STATE_DISCRIMINATOR + LIGHT_CLIENT_STATE_LAYOUT.build({
        "latest_block_height": latest_block_height,
        "latest_block_hash": bytes(32),
        "min_confirmations": min_confirmations,
    })


def tx_verified_state_data(is_verified: bool) -> bytes:
    return TX_VERIFIED_STATE_DISCRIMINATOR + TX_VERIFIED_STATE_LAYOUT.build({
        "is_verified": is_verified,
    })
