"""Monitor the bridge program for mint and burn events."""

import asyncio
import inspect
import logging
from typing import Any, Dict, List, Optional, Protocol

from solders.pubkey import Pubkey

from core.errors import TransportError
from core.types import BridgeEvent, BurnEvent, MintEvent, SignatureInfo
from database import MonitorDatabase
from ledger.rpc import DEFAULT_SIGNATURE_PAGE_SIZE, LedgerClient
from program.events import parse_transaction_event

logger = logging.getLogger(__name__)

DEFAULT_MAX_FETCH_ATTEMPTS = 5


class EventHandler(Protocol):
    """Receives decoded bridge events. Methods may be sync or async."""

    def on_mint(self, slot: int, signature: str, to: str, amount: int) -> Any:
        ...

    def on_burn(
        self,
        slot: int,
        signature: str,
        from_address: str,
        btc_address: str,
        amount: int,
        operator_id: int,
    ) -> Any:
        ...


class PageIncompleteError(TransportError):
    """A transaction in the current page could not be fetched."""
    pass


class EventMonitor:
    """Polls signatures of the bridge program and dispatches decoded events.

    Each cycle lists signatures newer than the watermark, processes them
    oldest first, and only then moves the watermark to the newest one. A
    page interrupted by a transport error is fetched again on the next cycle,
    so handlers can see the same event more than once. A transaction that
    still cannot be fetched after ``max_fetch_attempts`` cycles is skipped.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        program_id: Pubkey,
        handler: EventHandler,
        last_signature: Optional[str] = None,
        poll_interval: float = 1.0,
        page_size: int = DEFAULT_SIGNATURE_PAGE_SIZE,
        raise_handler_errors: bool = False,
        checkpoint: Optional[MonitorDatabase] = None,
        max_fetch_attempts: int = DEFAULT_MAX_FETCH_ATTEMPTS,
    ):
        """Initialize the event monitor.

        Args:
            ledger: Ledger client used to list and fetch transactions
            program_id: Bridge program to watch
            handler: Receives mint and burn events
            last_signature: Watermark to resume from; None starts at the chain head
            poll_interval: Seconds to sleep between cycles
            page_size: Signatures requested per cycle
            raise_handler_errors: Propagate handler exceptions out of run()
            checkpoint: Optional database to load and persist the watermark
            max_fetch_attempts: Cycles a listed transaction may fail to fetch
                before it is skipped
        """
        self.ledger = ledger
        self.program_id = program_id
        self.handler = handler
        self.poll_interval = poll_interval
        self.page_size = page_size
        self.raise_handler_errors = raise_handler_errors
        self.checkpoint = checkpoint
        self.max_fetch_attempts = max_fetch_attempts

        self._last_signature = last_signature
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        # signature -> consecutive cycles it could not be fetched
        self._fetch_failures: Dict[str, int] = {}

        logger.info(
            f"Initialized event monitor for {program_id} "
            f"(poll_interval={poll_interval}s, page_size={page_size})"
        )

    @property
    def last_signature(self) -> Optional[str]:
        return self._last_signature

    @property
    def checkpoint_key(self) -> str:
        return f"watermark:{self.program_id}"

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Run the monitor loop in a background task."""
        if self.running:
            logger.warning("Event monitor already running")
            return

        # Cleared here so a stop() issued before the task first runs is kept
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to finish."""
        logger.info("Stopping event monitor")
        self._stop_event.set()

        if self._task:
            try:
                await self._task
            finally:
                self._task = None

    async def run(self) -> None:
        """Poll until stop() is called.

        Raises:
            Exception: Whatever a handler raised, if ``raise_handler_errors`` is set
        """
        await self._load_checkpoint()

        logger.info(f"Starting event monitor from {self._last_signature or 'chain head'}")

        while not self._stop_event.is_set():
            await self.poll_once()

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Event monitor stopped at {self._last_signature}")

    async def poll_once(self) -> int:
        """Run one poll and dispatch cycle.

        Returns:
            Number of events dispatched
        """
        try:
            signatures = await self.ledger.get_signatures_for_address(
                self.program_id, until=self._last_signature, limit=self.page_size
            )
        except TransportError as e:
            logger.warning(f"Failed to fetch signatures, retrying next cycle: {e}")
            return 0

        if not signatures:
            return 0

        logger.debug(f"Fetched {len(signatures)} new signatures")

        try:
            dispatched = await self._dispatch_page(signatures)
        except PageIncompleteError as e:
            logger.warning(f"Page incomplete, will retry from {self._last_signature}: {e}")
            return 0

        self._last_signature = self._advance(self._last_signature, signatures)
        await self._save_checkpoint()
        return dispatched

    @staticmethod
    def _advance(watermark: Optional[str], signatures: List[SignatureInfo]) -> Optional[str]:
        """New watermark after fully processing a newest-first page."""
        if not signatures:
            return watermark
        return signatures[0].signature

    async def _dispatch_page(self, signatures: List[SignatureInfo]) -> int:
        dispatched = 0

        # Pages are newest first
        for sig_info in reversed(signatures):
            if sig_info.err is not None:
                logger.debug(f"Skipping failed transaction {sig_info.signature[:16]}...")
                continue

            try:
                record = await self.ledger.get_transaction(sig_info.signature)
            except TransportError as e:
                record = None
                reason = str(e)
            else:
                reason = "not available yet"

            if record is None:
                if self._record_fetch_failure(sig_info.signature):
                    raise PageIncompleteError(f"{sig_info.signature}: {reason}")
                logger.error(
                    f"Skipping {sig_info.signature} after {self.max_fetch_attempts} "
                    f"failed fetches: {reason}"
                )
                continue

            self._fetch_failures.pop(sig_info.signature, None)
            event = parse_transaction_event(record)
            if event is None:
                continue

            await self._dispatch(sig_info, event)
            dispatched += 1

        return dispatched

    def _record_fetch_failure(self, signature: str) -> bool:
        """Count a failed fetch. Returns False once ``signature`` should be skipped."""
        failures = self._fetch_failures.get(signature, 0) + 1
        if failures >= self.max_fetch_attempts:
            self._fetch_failures.pop(signature, None)
            return False
        self._fetch_failures[signature] = failures
        return True

    async def _dispatch(self, sig_info: SignatureInfo, event: BridgeEvent) -> None:
        """Hand one event to the handler."""
        try:
            if isinstance(event, MintEvent):
                logger.info(
                    f"Mint event in {sig_info.signature[:16]}... (slot {sig_info.slot}): "
                    f"{event.value} to {event.to}"
                )
                result = self.handler.on_mint(
                    sig_info.slot, sig_info.signature, event.to, event.value
                )
            elif isinstance(event, BurnEvent):
                logger.info(
                    f"Burn event in {sig_info.signature[:16]}... (slot {sig_info.slot}): "
                    f"{event.value} from {event.from_address} to {event.btc_address}"
                )
                result = self.handler.on_burn(
                    sig_info.slot,
                    sig_info.signature,
                    event.from_address,
                    event.btc_address,
                    event.value,
                    event.operator_id,
                )
            else:
                return

            if inspect.isawaitable(result):
                await result
        except Exception as e:
            if self.raise_handler_errors:
                raise
            logger.error(
                f"Error in event handler for {sig_info.signature[:16]}...: {e}",
                exc_info=True,
            )

    async def _load_checkpoint(self) -> None:
        if self.checkpoint is None or self._last_signature is not None:
            return

        saved = await self.checkpoint.get_state(self.checkpoint_key)
        if saved:
            logger.info(f"Resuming from checkpoint {saved[:16]}...")
            self._last_signature = saved

    async def _save_checkpoint(self) -> None:
        if self.checkpoint is None or self._last_signature is None:
            return
        await self.checkpoint.set_state(self.checkpoint_key, self._last_signature)
