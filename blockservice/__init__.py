"""
Content-addressed block access for IPFS-style nodes.

The :class:`BlockService` resolves CIDs against a local block store and,
when one is attached, a network exchange such as Bitswap.
"""

from importlib.metadata import version as __version

from blockservice.abc import (
    IBlockStore,
    IExchange,
)
from blockservice.batch import (
    BatchStatus,
    PutManyResult,
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
    CID_V0,
    CID_V1,
    CODEC_DAG_PB,
    CODEC_RAW,
    compute_cid,
    compute_cid_v0,
    compute_cid_v1,
    verify_cid,
)
from blockservice.config import (
    BlockServiceConfig,
)
from blockservice.exceptions import (
    BaseBlockServiceError,
    BatchPutError,
    BlockIntegrityError,
    BlockNotFoundError,
    ExchangeFailureError,
    InvalidArgumentError,
    InvalidBlockError,
    InvalidCIDError,
    StoreFailureError,
)
from blockservice.service import (
    BlockService,
)
from blockservice.utils.logging import (
    setup_logging,
)

# Initialize logging configuration
setup_logging()

__version__ = __version("blockservice")

__all__ = [
    "BlockService",
    "BlockServiceConfig",
    "Block",
    "CID",
    "IBlockStore",
    "IExchange",
    "MemoryBlockStore",
    "SQLiteBlockStore",
    "FlatFSBlockStore",
    "BatchStatus",
    "PutManyResult",
    # CID utilities
    "compute_cid",
    "compute_cid_v0",
    "compute_cid_v1",
    "verify_cid",
    "CID_V0",
    "CID_V1",
    "CODEC_DAG_PB",
    "CODEC_RAW",
    # Errors
    "BaseBlockServiceError",
    "InvalidArgumentError",
    "InvalidCIDError",
    "InvalidBlockError",
    "BlockNotFoundError",
    "ExchangeFailureError",
    "StoreFailureError",
    "BatchPutError",
    "BlockIntegrityError",
]
