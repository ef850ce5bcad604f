"""
Tests for the event handlers.
"""

import pytest

from database import MonitorDatabase
from handlers import DeduplicatingEventHandler, LoggingEventHandler


class CountingHandler:

    def __init__(self, fail_times=0):
        self.mints = []
        self.burns = []
        self.fail_times = fail_times

    def on_mint(self, slot, signature, to, amount):
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("downstream unavailable")
        self.mints.append(signature)

    async def on_burn(self, slot, signature, from_address, btc_address, amount, operator_id):
        self.burns.append((signature, btc_address, amount, operator_id))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "handlers.db")


@pytest.mark.asyncio
async def test_forwards_each_event_once(db_path):
    db = MonitorDatabase(db_path)
    await db.start()
    try:
        inner = CountingHandler()
        handler = DeduplicatingEventHandler(inner, db)

        await handler.on_mint(1, "s1", "to", 5)
        await handler.on_mint(1, "s1", "to", 5)
        await handler.on_burn(2, "s2", "from", "bc1q", 7, 1)
        await handler.on_burn(2, "s2", "from", "bc1q", 7, 1)

        assert inner.mints == ["s1"]
        assert inner.burns == [("s2", "bc1q", 7, 1)]
    finally:
        await db.stop()


@pytest.mark.asyncio
async def test_failed_delivery_is_retried(db_path):
    db = MonitorDatabase(db_path)
    await db.start()
    try:
        inner = CountingHandler(fail_times=1)
        handler = DeduplicatingEventHandler(inner, db)

        with pytest.raises(RuntimeError):
            await handler.on_mint(1, "s1", "to", 5)
        assert not await db.is_event_processed("s1", "mint")

        await handler.on_mint(1, "s1", "to", 5)

        assert inner.mints == ["s1"]
        assert await db.is_event_processed("s1", "mint")
    finally:
        await db.stop()


@pytest.mark.asyncio
async def test_logging_handler(caplog):
    handler = LoggingEventHandler()

    with caplog.at_level("INFO", logger="handlers"):
        await handler.on_mint(3, "sig-mint", "recipient", 42)
        await handler.on_burn(4, "sig-burn", "burner", "bc1qdest", 8, 2)

    assert "sig-mint" in caplog.text
    assert "bc1qdest" in caplog.text
