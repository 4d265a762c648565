"""
SQLite block store implementation.

All blocks live in one table of a single database file. A batch is written
in one transaction, so ``put_many`` either stores everything or nothing.
"""

from collections.abc import (
    Sequence,
)
import logging
from pathlib import (
    Path,
)
import sqlite3

import trio

from blockservice.abc import (
    IBlockStore,
)
from blockservice.cid import (
    CID,
)

from .errors import (
    StoreClosedError,
)

logger = logging.getLogger(__name__)


class SQLiteBlockStore(IBlockStore):
    """
    SQLite-based block store.

    Supports the async context manager protocol for resource management.
    """

    def __init__(self, path: str | Path):
        """
        Initialize SQLite block store.

        Args:
            path: Path to the SQLite database file

        """
        self.path = Path(path)
        self.connection: sqlite3.Connection | None = None
        self._lock = trio.Lock()
        self._closed = False

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Readable/writable by owner only
        if not self.path.exists():
            self.path.touch(mode=0o600)

        connection = sqlite3.connect(
            str(self.path),
            check_same_thread=False,
            timeout=30.0,
        )
        cursor = connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        # FULL: a committed block survives power loss
        cursor.execute("PRAGMA synchronous=FULL")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS blocks (
                cid BLOB PRIMARY KEY,
                data BLOB NOT NULL
            )
        """)
        connection.commit()
        logger.debug("Opened block store %s", self.path)
        return connection

    async def _ensure_connection(self) -> sqlite3.Connection:
        """
        Ensure database connection is established.

        :raises StoreClosedError: If the store is closed
        :raises sqlite3.Error: If database connection fails
        """
        if self._closed:
            raise StoreClosedError(f"Block store {self.path} is closed")

        if self.connection is None:
            async with self._lock:
                if self.connection is None:
                    self.connection = self._connect()
        return self.connection

    async def has(self, cid: CID) -> bool:
        """Check if a block exists."""
        connection = await self._ensure_connection()
        cursor = connection.cursor()
        cursor.execute("SELECT 1 FROM blocks WHERE cid = ?", (cid.to_bytes(),))
        return cursor.fetchone() is not None

    async def get(self, cid: CID) -> bytes | None:
        """Get a block by its CID."""
        connection = await self._ensure_connection()
        cursor = connection.cursor()
        cursor.execute("SELECT data FROM blocks WHERE cid = ?", (cid.to_bytes(),))
        result = cursor.fetchone()
        return bytes(result[0]) if result else None

    async def put(self, cid: CID, data: bytes) -> None:
        """Store a block."""
        connection = await self._ensure_connection()
        cursor = connection.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO blocks (cid, data) VALUES (?, ?)",
            (cid.to_bytes(), bytes(data)),
        )
        connection.commit()

    async def put_many(self, entries: Sequence[tuple[CID, bytes]]) -> None:
        """Store all blocks of the batch in one transaction."""
        if not entries:
            return
        connection = await self._ensure_connection()
        try:
            connection.executemany(
                "INSERT OR REPLACE INTO blocks (cid, data) VALUES (?, ?)",
                [(cid.to_bytes(), bytes(data)) for cid, data in entries],
            )
            connection.commit()
        except Exception:
            connection.rollback()
            raise

    async def delete(self, cid: CID) -> None:
        """Delete a block."""
        connection = await self._ensure_connection()
        cursor = connection.cursor()
        cursor.execute("DELETE FROM blocks WHERE cid = ?", (cid.to_bytes(),))
        connection.commit()

    def get_all_cids(self) -> list[CID]:
        """
        Get all CIDs in the store.

        Opens an existing database file if no operation has opened it yet.

        :raises StoreClosedError: If the store is closed
        """
        if self._closed:
            raise StoreClosedError(f"Block store {self.path} is closed")
        if self.connection is None:
            if not self.path.exists():
                return []
            self.connection = self._connect()
        cursor = self.connection.cursor()
        cursor.execute("SELECT cid FROM blocks")
        return [CID(row[0]) for row in cursor]

    async def close(self) -> None:
        """
        Close the database connection.

        This method is idempotent and can be called multiple times safely.
        """
        async with self._lock:
            try:
                if self.connection is not None:
                    self.connection.close()
            finally:
                self.connection = None
                self._closed = True

    async def __aenter__(self) -> "SQLiteBlockStore":
        await self._ensure_connection()
        return self

    async def __aexit__(
        self, exc_type: type, exc_val: Exception, exc_tb: object
    ) -> None:
        await self.close()
