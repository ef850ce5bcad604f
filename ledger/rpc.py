"""Solana JSON-RPC client for bridge operations."""

import base64
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from core.errors import RPCError, TransportError
from core.types import SignatureInfo, TransactionRecord

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_PAGE_SIZE = 1000


class LedgerClient(Protocol):
    """What the bridge client needs from the chain."""

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        ...

    async def get_signatures_for_address(
        self,
        address: Pubkey,
        until: Optional[str] = None,
        limit: int = DEFAULT_SIGNATURE_PAGE_SIZE,
    ) -> List[SignatureInfo]:
        ...

    async def get_transaction(self, signature: str) -> Optional[TransactionRecord]:
        ...

    async def send_instructions(
        self, instructions: Sequence[Instruction], signer: Keypair
    ) -> str:
        ...


class SolanaRpcClient:
    """Talks to a Solana RPC node over HTTP JSON-RPC."""

    def __init__(self, rpc_url: str, commitment: str = "confirmed", timeout: float = 30):
        """Create a new Solana RPC client.

        Args:
            rpc_url: HTTP endpoint of the RPC node
            commitment: Commitment level for reads and preflight
            timeout: Total timeout per request in seconds
        """
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_id = 0
        logger.info(f"Initializing Solana RPC client at {rpc_url}")

    async def start(self) -> None:
        """Open the HTTP session."""
        if self._session:
            return

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        logger.info(f"Connected to Solana RPC at {self.rpc_url}")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("Solana RPC client stopped")

    async def _rpc_call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC call.

        Args:
            method: RPC method name
            params: Positional parameters

        Returns:
            The ``result`` member of the response

        Raises:
            TransportError: If the request cannot be sent or the response is not JSON
            RPCError: If the node returns an error object
        """
        if not self._session:
            raise TransportError("Session not initialized - call start() first")

        self._request_id += 1
        request_body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            async with self._session.post(self.rpc_url, json=request_body) as response:
                if response.status != 200:
                    text = await response.text()
                    raise TransportError(
                        f"HTTP {response.status} from {method}: {text[:200]}"
                    )
                response_data = await response.json(content_type=None)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Failed to send RPC request {method}: {e}")

        if response_data.get("error"):
            error = response_data["error"]
            raise RPCError(
                error.get("message", "unknown error") if isinstance(error, dict) else str(error),
                method=method,
                details=str(error),
            )

        if "result" not in response_data:
            raise RPCError("Missing result in RPC response", method=method)

        return response_data["result"]

    async def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        """Raw data of an account, or None if it does not exist."""
        result = await self._rpc_call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = result.get("value")
        if value is None:
            return None

        data, encoding = value["data"]
        if encoding != "base64":
            raise RPCError(f"Unexpected account encoding {encoding}", method="getAccountInfo")
        return base64.b64decode(data)

    async def get_signatures_for_address(
        self,
        address: Pubkey,
        until: Optional[str] = None,
        limit: int = DEFAULT_SIGNATURE_PAGE_SIZE,
        before: Optional[str] = None,
    ) -> List[SignatureInfo]:
        """Signatures touching ``address``, newest first.

        Args:
            address: Account to list signatures for
            until: Stop before reaching this signature (exclusive)
            limit: Page size, at most 1000
            before: Start strictly older than this signature

        Returns:
            List of SignatureInfo
        """
        config: Dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if until:
            config["until"] = until
        if before:
            config["before"] = before

        result = await self._rpc_call("getSignaturesForAddress", [str(address), config])
        return [
            SignatureInfo(
                signature=entry["signature"],
                slot=entry["slot"],
                err=entry.get("err"),
            )
            for entry in result
        ]

    async def get_transaction(self, signature: str) -> Optional[TransactionRecord]:
        """Fetch a transaction, or None if the node does not have it yet."""
        result = await self._rpc_call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            return None

        meta = result.get("meta") or {}
        return TransactionRecord(
            signature=signature,
            slot=result.get("slot", 0),
            logs=list(meta.get("logMessages") or []),
            err=meta.get("err"),
        )

    async def get_latest_blockhash(self) -> Hash:
        result = await self._rpc_call("getLatestBlockhash", [{"commitment": self.commitment}])
        return Hash.from_string(result["value"]["blockhash"])

    async def send_transaction(self, transaction: VersionedTransaction) -> str:
        """Submit a signed transaction and return its signature."""
        encoded = base64.b64encode(bytes(transaction)).decode()
        return await self._rpc_call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )

    async def send_instructions(
        self, instructions: Sequence[Instruction], signer: Keypair
    ) -> str:
        """Compile, sign and submit ``instructions`` with ``signer`` as fee payer."""
        blockhash = await self.get_latest_blockhash()
        message = Message.new_with_blockhash(list(instructions), signer.pubkey(), blockhash)
        transaction = VersionedTransaction(message, [signer])
        signature = await self.send_transaction(transaction)
        logger.debug(f"Submitted transaction {signature}")
        return signature

    async def __aenter__(self) -> "SolanaRpcClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
