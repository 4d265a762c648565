"""
Local block store implementations.

Every store implements :class:`blockservice.abc.IBlockStore`:

- MemoryBlockStore (for testing and ephemeral nodes)
- SQLiteBlockStore (single database file, transactional batches)
- FlatFSBlockStore (one file per block in sharded directories)
"""

from .errors import (
    BlockStoreError,
    PartialWriteError,
    StoreClosedError,
)
from .flatfs import (
    FlatFSBlockStore,
)
from .memory import (
    MemoryBlockStore,
)
from .sqlite import (
    SQLiteBlockStore,
)

__all__ = [
    "BlockStoreError",
    "PartialWriteError",
    "StoreClosedError",
    "FlatFSBlockStore",
    "MemoryBlockStore",
    "SQLiteBlockStore",
]
