"""Wait for submitted transactions to become queryable."""

import asyncio
import logging

from core.errors import NotFoundAfterRetriesError, TransportError
from core.types import TransactionRecord
from ledger.rpc import LedgerClient

logger = logging.getLogger(__name__)


class TransactionStatusPoller:
    """Fetches a transaction by signature, retrying until it lands.

    A signature returned by sendTransaction only means the node accepted the
    transaction; it may take several seconds before getTransaction sees it.
    """

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    async def poll(
        self,
        signature: str,
        max_attempts: int = 10,
        interval: float = 2.0,
    ) -> TransactionRecord:
        """Fetch ``signature``, retrying on transport errors or a missing result.

        Args:
            signature: Transaction signature
            max_attempts: Fetch attempts before giving up
            interval: Seconds to wait between attempts

        Returns:
            The fetched TransactionRecord

        Raises:
            NotFoundAfterRetriesError: If every attempt failed
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            try:
                record = await self.ledger.get_transaction(signature)
            except TransportError as e:
                logger.warning(
                    f"Fetching {signature[:16]}... failed "
                    f"(attempt {attempt}/{max_attempts}): {e}"
                )
                record = None
            else:
                if record is None:
                    logger.info(
                        f"Transaction {signature[:16]}... not found yet "
                        f"(attempt {attempt}/{max_attempts})"
                    )

            if record is not None:
                return record

            if attempt < max_attempts:
                await asyncio.sleep(interval)

        raise NotFoundAfterRetriesError(signature, max_attempts)
