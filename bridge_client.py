"""Client for the BitVM bridge and BTC light client programs on Solana."""

import asyncio
import logging
from typing import List, Optional, Sequence

from construct import ConstructError
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from core.errors import (
    BridgeError,
    InvalidAddressFormatError,
    NotFoundAfterRetriesError,
    StateMismatchError,
)
from core.types import (
    BridgeEvent,
    BridgeState,
    BtcTxProof,
    LightClientState,
    TransactionRecord,
    TxVerifiedState,
)
from ledger.rpc import LedgerClient
from ledger.status import TransactionStatusPoller
from program import instructions
from program.events import parse_transaction_event
from program.layouts import (
    BRIDGE_STATE_DISCRIMINATOR,
    BRIDGE_STATE_LAYOUT,
    DISCRIMINATOR_LEN,
    LIGHT_CLIENT_STATE_DISCRIMINATOR,
    LIGHT_CLIENT_STATE_LAYOUT,
    TX_VERIFIED_STATE_DISCRIMINATOR,
    TX_VERIFIED_STATE_LAYOUT,
)
from program.pda import (
    block_hash_entry_address,
    bridge_state_address,
    light_client_state_address,
    tx_minted_state_address,
    tx_verified_state_address,
)

logger = logging.getLogger(__name__)


def validate_address(address: str) -> Pubkey:
    """Parse a base58 Solana address.

    Args:
        address: Candidate address

    Returns:
        The parsed Pubkey

    Raises:
        InvalidAddressFormatError: If the string is not a 32-byte base58 key
    """
    if not isinstance(address, str) or not address:
        raise InvalidAddressFormatError(f"Invalid Solana address: {address!r}")
    try:
        return Pubkey.from_string(address)
    except ValueError as e:
        raise InvalidAddressFormatError(f"Invalid Solana address {address!r}: {e}")


def is_valid_address(address: str) -> bool:
    try:
        validate_address(address)
    except InvalidAddressFormatError:
        return False
    return True


class QueryClient:
    """Read-only access to bridge transactions."""

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger
        self.poller = TransactionStatusPoller(ledger)

    async def parse_transaction_event(self, signature: str) -> Optional[BridgeEvent]:
        """Fetch a transaction and decode its bridge event, if any."""
        record = await self.ledger.get_transaction(signature)
        if record is None:
            return None
        return parse_transaction_event(record)

    async def wait_for_transaction(
        self,
        signature: str,
        max_attempts: int = 10,
        interval: float = 2.0,
    ) -> TransactionRecord:
        return await self.poller.poll(signature, max_attempts=max_attempts, interval=interval)


class BitvmBridgeClient(QueryClient):
    """Submits bridge instructions and reads bridge state.

    Derived addresses and bridge state are recomputed on every call; the
    bridge owner can toggle ``skip_tx_verification`` at any time.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        bridge_program_id: Pubkey,
        light_client_program_id: Pubkey,
        payer: Keypair,
    ):
        """Initialize the bridge client.

        Args:
            ledger: Ledger client used for reads and submission
            bridge_program_id: bitvm_bridge program
            light_client_program_id: btc_light_client program
            payer: Keypair that signs and pays for transactions
        """
        super().__init__(ledger)
        self.bridge_program_id = bridge_program_id
        self.light_client_program_id = light_client_program_id
        self.payer = payer

        logger.info(
            f"Initialized bridge client for program {bridge_program_id} "
            f"(light client {light_client_program_id}, payer {payer.pubkey()})"
        )

    validate_address = staticmethod(validate_address)
    is_valid_address = staticmethod(is_valid_address)

    async def _fetch_account(
        self, name: str, address: Pubkey, expected_discriminator: bytes, layout
    ):
        """Fetch an Anchor account and decode it with ``layout``.

        Raises:
            StateMismatchError: If the account is missing or undecodable
        """
        data = await self.ledger.get_account_data(address)
        if data is None:
            raise StateMismatchError("Account not found", account=name, address=str(address))

        if data[:DISCRIMINATOR_LEN] != expected_discriminator:
            raise StateMismatchError(
                "Account discriminator mismatch", account=name, address=str(address)
            )

        try:
            return layout.parse(data[DISCRIMINATOR_LEN:])
        except ConstructError as e:
            raise StateMismatchError(
                f"Failed to decode account: {e}", account=name, address=str(address)
            )

    async def get_bridge_state(self) -> BridgeState:
        address = bridge_state_address(self.bridge_program_id).address
        parsed = await self._fetch_account(
            "bridge_state", address, BRIDGE_STATE_DISCRIMINATOR, BRIDGE_STATE_LAYOUT
        )
        return BridgeState(
            owner=Pubkey.from_bytes(parsed["owner"]),
            mint_account=Pubkey.from_bytes(parsed["mint_account"]),
            skip_tx_verification=bool(parsed["skip_tx_verification"]),
        )

    async def get_light_client_state(self) -> LightClientState:
        address = light_client_state_address(self.light_client_program_id).address
        parsed = await self._fetch_account(
            "btc_light_client",
            address,
            LIGHT_CLIENT_STATE_DISCRIMINATOR,
            LIGHT_CLIENT_STATE_LAYOUT,
        )
        return LightClientState(
            latest_block_height=parsed["latest_block_height"],
            latest_block_hash=bytes(parsed["latest_block_hash"]),
            min_confirmations=parsed["min_confirmations"],
        )

    async def _submit(self, action: str, ixs: Sequence[Instruction], context: str) -> str:
        """Send ``ixs`` signed by the payer, logging enough to diagnose failures."""
        try:
            signature = await self.ledger.send_instructions(list(ixs), self.payer)
        except BridgeError as e:
            logger.error(f"{action} failed ({context}): {e}")
            raise
        logger.info(f"{action} submitted in tx {signature} ({context})")
        return signature

    async def mint(self, recipient: str, tx_id: bytes, amount: int) -> str:
        """Mint bridged tokens for a BTC deposit.

        Args:
            recipient: Base58 owner of the receiving token account
            tx_id: 32-byte BTC transaction id
            amount: Amount in token base units

        Returns:
            Transaction signature
        """
        recipient_key = validate_address(recipient)

        bridge_state = bridge_state_address(self.bridge_program_id).address
        state = await self.get_bridge_state()

        ata = get_associated_token_address(recipient_key, state.mint_account)
        tx_minted_state = tx_minted_state_address(self.bridge_program_id, tx_id).address

        if state.skip_tx_verification:
            tx_verified_state = None
        else:
            tx_verified_state = tx_verified_state_address(
                self.light_client_program_id, tx_id
            ).address

        ix = instructions.build_mint_instruction(
            program_id=self.bridge_program_id,
            mint_authority=self.payer.pubkey(),
            recipient=recipient_key,
            mint_account=state.mint_account,
            associated_token_account=ata,
            bridge_state=bridge_state,
            tx_minted_state=tx_minted_state,
            tx_verified_state=tx_verified_state,
            tx_id=tx_id,
            amount=amount,
        )

        logger.info(f"Minting {amount} to {recipient[:16]}... for BTC tx {bytes(tx_id).hex()[:16]}...")
        return await self._submit(
            "mint",
            [ix],
            f"tx_minted_state={tx_minted_state}, tx_verified_state={tx_verified_state}",
        )

    async def burn(self, amount: int, btc_address: str, operator_id: int) -> str:
        """Burn the payer's bridged tokens to request a BTC withdrawal.

        Args:
            amount: Amount in token base units
            btc_address: Destination BTC address
            operator_id: Operator that should process the withdrawal

        Returns:
            Transaction signature
        """
        bridge_state = bridge_state_address(self.bridge_program_id).address
        state = await self.get_bridge_state()

        ata = get_associated_token_address(self.payer.pubkey(), state.mint_account)

        ix = instructions.build_burn_instruction(
            program_id=self.bridge_program_id,
            authority=self.payer.pubkey(),
            mint_account=state.mint_account,
            associated_token_account=ata,
            bridge_state=bridge_state,
            amount=amount,
            btc_address=btc_address,
            operator_id=operator_id,
        )

        logger.info(f"Burning {amount} for BTC address {btc_address} (operator {operator_id})")
        return await self._submit("burn", [ix], f"token_account={ata}")

    async def verify_transaction(
        self,
        block_height: int,
        block_header: bytes,
        tx_id: bytes,
        tx_index: int,
        merkle_proof: List[bytes],
        raw_tx: bytes,
        output_index: int,
        expected_amount: int,
        expected_script_hash: bytes,
    ) -> str:
        """Submit a BTC transaction inclusion proof to the light client.

        Returns:
            Transaction signature
        """
        proof = BtcTxProof(
            block_header=bytes(block_header),
            tx_id=bytes(tx_id),
            tx_index=tx_index,
            merkle_proof=[bytes(node) for node in merkle_proof],
            raw_tx=bytes(raw_tx),
            output_index=output_index,
            expected_amount=expected_amount,
            expected_script_hash=bytes(expected_script_hash),
        )

        block_hash_entry = block_hash_entry_address(
            self.light_client_program_id, block_height
        ).address
        tx_verified_state = tx_verified_state_address(
            self.light_client_program_id, proof.tx_id
        ).address
        state = light_client_state_address(self.light_client_program_id).address

        ixs = instructions.build_verify_transaction_instructions(
            program_id=self.light_client_program_id,
            state=state,
            tx_verified_state=tx_verified_state,
            payer=self.payer.pubkey(),
            block_hash_entry=block_hash_entry,
            block_height=block_height,
            proof=proof,
        )

        logger.info(
            f"Verifying BTC tx {proof.tx_id.hex()[:16]}... at height {block_height} "
            f"(index {tx_index}, {len(proof.merkle_proof)} proof nodes)"
        )
        return await self._submit(
            "verify_transaction",
            ixs,
            f"block_hash_entry={block_hash_entry}, tx_verified_state={tx_verified_state}",
        )

    async def query_latest_block_height(self) -> int:
        state = await self.get_light_client_state()
        return state.latest_block_height

    async def query_min_confirmations(self) -> int:
        state = await self.get_light_client_state()
        return state.min_confirmations

    async def get_tx_verification_status(self, tx_id: bytes) -> bool:
        """Whether a BTC transaction is verified, as far as minting is concerned.

        Returns True without reading the light client when the bridge skips
        verification.

        Raises:
            StateMismatchError: If the verification marker account does not exist yet
        """
        state = await self.get_bridge_state()
        if state.skip_tx_verification:
            return True

        address = tx_verified_state_address(self.light_client_program_id, tx_id).address
        parsed = await self._fetch_account(
            "tx_verified_state",
            address,
            TX_VERIFIED_STATE_DISCRIMINATOR,
            TX_VERIFIED_STATE_LAYOUT,
        )
        return TxVerifiedState(is_verified=bool(parsed["is_verified"])).is_verified

    async def wait_for_verification(
        self,
        tx_id: bytes,
        max_attempts: int = 5,
        interval: float = 2.0,
    ) -> bool:
        """Poll until ``tx_id`` is verified.

        Raises:
            NotFoundAfterRetriesError: If it is still unverified after ``max_attempts`` checks
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            try:
                if await self.get_tx_verification_status(tx_id):
                    return True
            except StateMismatchError as e:
                if e.account != "tx_verified_state":
                    raise
            logger.info(
                f"BTC tx {bytes(tx_id).hex()[:16]}... not verified yet "
                f"(attempt {attempt}/{max_attempts})"
            )
            if attempt < max_attempts:
                await asyncio.sleep(interval)

        raise NotFoundAfterRetriesError(f"verification of {bytes(tx_id).hex()}", max_attempts)
