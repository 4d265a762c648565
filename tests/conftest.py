"""Pytest configuration, fake exchanges and fixtures for block service tests."""

import pytest

from blockservice.abc import (
    IExchange,
)
from blockservice.block import (
    Block,
)
from blockservice.blockstore import (
    FlatFSBlockStore,
    MemoryBlockStore,
    SQLiteBlockStore,
)
from blockservice.cid import (
    CID,
)
from blockservice.service import (
    BlockService,
)

from factories import (
    BlockFactory,
)


class RecordingExchange(IExchange):
    """Exchange that serves blocks from a dict and records announcements."""

    def __init__(self, blocks: dict[CID, Block] | None = None) -> None:
        self.blocks = dict(blocks or {})
        self.fetched: list[CID] = []
        self.announced: list[Block] = []

    async def get(self, cid: CID) -> Block:
        self.fetched.append(cid)
        try:
            return self.blocks[cid]
        except KeyError:
            raise LookupError(f"no peer has {cid}")

    async def put(self, block: Block) -> None:
        self.announced.append(block)


class FetchOnlyExchange:
    """Exchange without an announce capability."""

    def __init__(self, blocks: dict[CID, Block] | None = None) -> None:
        self.blocks = dict(blocks or {})

    async def get(self, cid: CID) -> Block:
        return self.blocks[cid]


class AnnounceOnlyExchange:
    """Exchange without a fetch capability; announcements can be made to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.announced: list[Block] = []

    async def put(self, block: Block) -> None:
        self.announced.append(block)
        if self.fail:
            raise ConnectionError("announce failed")


@pytest.fixture
def block_factory():
    return BlockFactory


@pytest.fixture
def memory_store():
    """Create a fresh MemoryBlockStore."""
    return MemoryBlockStore()


@pytest.fixture
def block_service(memory_store):
    """Create an offline BlockService over a fresh MemoryBlockStore."""
    return BlockService(memory_store)


@pytest.fixture(params=["memory", "sqlite", "flatfs"])
def any_store(request, tmp_path):
    """Each block store implementation, backed by a temporary directory."""
    if request.param == "memory":
        return MemoryBlockStore()
    if request.param == "sqlite":
        return SQLiteBlockStore(tmp_path / "blocks.db")
    return FlatFSBlockStore(tmp_path / "blocks", sync=False)
