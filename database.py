"""SQLite persistence for monitor checkpoints and processed events."""

import sqlite3
import logging
from typing import Optional
from pathlib import Path
import asyncio

logger = logging.getLogger(__name__)


class MonitorDatabase:
    """SQLite database for event monitor state."""

    def __init__(self, db_path: str = "bridge_client.db"):
        """Initialize the database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        logger.info(f"Initialized database at {db_path}")

    async def start(self) -> None:
        """Initialize database connection and create tables."""
        # Run blocking DB operations in executor
        await asyncio.get_event_loop().run_in_executor(None, self._init_db)
        logger.info("Database started")

    def _init_db(self) -> None:
        """Internal: Initialize database connection and schema."""
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS monitor_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS processed_events (
                signature TEXT NOT NULL,
                kind TEXT NOT NULL,
                slot INTEGER NOT NULL,
                processed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (signature, kind)
            );
        """)
        self.conn.commit()

    async def stop(self) -> None:
        """Close database connection."""
        if self.conn:
            await asyncio.get_event_loop().run_in_executor(None, self.conn.close)
            self.conn = None
        logger.info("Database stopped")

    async def get_state(self, key: str) -> Optional[str]:
        """Get a state value.

        Args:
            key: State key

        Returns:
            State value or None
        """
        def _get():
            cursor = self.conn.execute(
                "SELECT value FROM monitor_state WHERE key = ?",
                (key,)
            )
            row = cursor.fetchone()
            return row["value"] if row else None

        return await asyncio.get_event_loop().run_in_executor(None, _get)

    async def set_state(self, key: str, value: str) -> None:
        """Set a state value.

        Args:
            key: State key
            value: State value
        """
        def _set():
            self.conn.execute(
                """INSERT OR REPLACE INTO monitor_state (key, value, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)""",
                (key, value)
            )
            self.conn.commit()

        await asyncio.get_event_loop().run_in_executor(None, _set)

    async def is_event_processed(self, signature: str, kind: str) -> bool:
        """Check if an event has been handled.

        Args:
            signature: Solana transaction signature
            kind: Event kind ("mint" or "burn")

        Returns:
            True if processed
        """
        def _check():
            cursor = self.conn.execute(
                "SELECT 1 FROM processed_events WHERE signature = ? AND kind = ?",
                (signature, kind)
            )
            return cursor.fetchone() is not None

        return await asyncio.get_event_loop().run_in_executor(None, _check)

    async def mark_event_processed(self, signature: str, kind: str, slot: int) -> None:
        """Mark an event as handled.

        Args:
            signature: Solana transaction signature
            kind: Event kind ("mint" or "burn")
            slot: Slot the transaction landed in
        """
        def _save():
            self.conn.execute(
                """INSERT OR REPLACE INTO processed_events (signature, kind, slot)
                   VALUES (?, ?, ?)""",
                (signature, kind, slot)
            )
            self.conn.commit()

        await asyncio.get_event_loop().run_in_executor(None, _save)
