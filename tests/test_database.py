"""
Tests for the monitor database.
"""

import pytest

from database import MonitorDatabase


@pytest.mark.asyncio
async def test_state_round_trip(tmp_path):
    db = MonitorDatabase(str(tmp_path / "state.db"))
    await db.start()
    try:
        assert await db.get_state("watermark:abc") is None

        await db.set_state("watermark:abc", "sig1")
        await db.set_state("watermark:abc", "sig2")

        assert await db.get_state("watermark:abc") == "sig2"
    finally:
        await db.stop()


@pytest.mark.asyncio
async def test_state_survives_reopen(tmp_path):
    path = str(tmp_path / "state.db")

    db = MonitorDatabase(path)
    await db.start()
    await db.set_state("watermark:abc", "sig1")
    await db.stop()

    reopened = MonitorDatabase(path)
    await reopened.start()
    try:
        assert await reopened.get_state("watermark:abc") == "sig1"
    finally:
        await reopened.stop()


@pytest.mark.asyncio
async def test_processed_events_keyed_by_kind(tmp_path):
    db = MonitorDatabase(str(tmp_path / "state.db"))
    await db.start()
    try:
        assert not await db.is_event_processed("sig1", "mint")

        await db.mark_event_processed("sig1", "mint", 10)
        await db.mark_event_processed("sig1", "mint", 10)

        assert await db.is_event_processed("sig1", "mint")
        assert not await db.is_event_processed("sig1", "burn")
    finally:
        await db.stop()
