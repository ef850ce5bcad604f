"""Event handlers for the bridge event monitor."""

import inspect
import logging

from database import MonitorDatabase
from event_monitor import EventHandler

logger = logging.getLogger(__name__)


class LoggingEventHandler:
    """Logs every event it receives."""

    async def on_mint(self, slot: int, signature: str, to: str, amount: int) -> None:
        logger.info(
            f"Mint event detected: slot={slot} signature={signature} "
            f"to={to} amount={amount}"
        )

    async def on_burn(
        self,
        slot: int,
        signature: str,
        from_address: str,
        btc_address: str,
        amount: int,
        operator_id: int,
    ) -> None:
        logger.info(
            f"Burn event detected: slot={slot} signature={signature} "
            f"from={from_address} btc_address={btc_address} "
            f"amount={amount} operator_id={operator_id}"
        )


class DeduplicatingEventHandler:
    """Forwards each (signature, kind) to ``inner`` at most once.

    The monitor delivers at least once; this turns that into effectively
    once for handlers with side effects. An event is recorded only after
    ``inner`` returns, so a failed handler call is retried on redelivery.
    """

    def __init__(self, inner: EventHandler, db: MonitorDatabase):
        self.inner = inner
        self.db = db

    async def _call(self, method, *args):
        result = method(*args)
        if inspect.isawaitable(result):
            await result

    async def on_mint(self, slot: int, signature: str, to: str, amount: int) -> None:
        if await self.db.is_event_processed(signature, "mint"):
            logger.debug(f"Mint {signature[:16]}... already processed")
            return

        await self._call(self.inner.on_mint, slot, signature, to, amount)
        await self.db.mark_event_processed(signature, "mint", slot)

    async def on_burn(
        self,
        slot: int,
        signature: str,
        from_address: str,
        btc_address: str,
        amount: int,
        operator_id: int,
    ) -> None:
        if await self.db.is_event_processed(signature, "burn"):
            logger.debug(f"Burn {signature[:16]}... already processed")
            return

        await self._call(
            self.inner.on_burn, slot, signature, from_address, btc_address, amount, operator_id
        )
        await self.db.mark_event_processed(signature, "burn", slot)
