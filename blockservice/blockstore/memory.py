"""
In-memory block store implementation.

This is useful for testing and for nodes that do not need persistence.
"""

from collections.abc import (
    Sequence,
)

import trio

from blockservice.abc import (
    IBlockStore,
)
from blockservice.cid import (
    CID,
)


class MemoryBlockStore(IBlockStore):
    """In-memory block store implementation."""

    def __init__(self) -> None:
        """Initialize the memory block store."""
        self._blocks: dict[CID, bytes] = {}
        self._lock = trio.Lock()

    async def has(self, cid: CID) -> bool:
        """Check if a block exists."""
        async with self._lock:
            return cid in self._blocks

    async def get(self, cid: CID) -> bytes | None:
        """Get a block by its CID."""
        async with self._lock:
            return self._blocks.get(cid)

    async def put(self, cid: CID, data: bytes) -> None:
        """Store a block."""
        async with self._lock:
            self._blocks[cid] = bytes(data)

    async def put_many(self, entries: Sequence[tuple[CID, bytes]]) -> None:
        """Store all blocks of the batch at once."""
        async with self._lock:
            for cid, data in entries:
                self._blocks[cid] = bytes(data)

    async def delete(self, cid: CID) -> None:
        """Delete a block."""
        async with self._lock:
            self._blocks.pop(cid, None)

    def get_all_cids(self) -> list[CID]:
        """Get all CIDs in the store."""
        return list(self._blocks.keys())

    def size(self) -> int:
        """Get the number of blocks in the store."""
        return len(self._blocks)

    async def close(self) -> None:
        """Drop all blocks."""
        async with self._lock:
            self._blocks.clear()
