"""
Block service configuration constants and defaults.
"""

from dataclasses import (
    dataclass,
)

# CID defaults for blocks built with Block.from_data
DEFAULT_CID_VERSION = 0  # CIDv0, matches go-ipfs and js-ipfs defaults

# Default timeout for exchange fetches (in seconds); None waits for the exchange
DEFAULT_EXCHANGE_TIMEOUT: float | None = None

# Seconds to wait for the exchange to take an announcement before giving up
DEFAULT_ANNOUNCE_TIMEOUT = 30.0

# Maximum number of announcements in flight during put_many
DEFAULT_ANNOUNCE_CONCURRENCY = 16

# Sharding width of FlatFSBlockStore directory names
FLATFS_SHARD_WIDTH = 2

FLATFS_EXTENSION = ".data"


@dataclass
class BlockServiceConfig:
    """
    Configuration for :class:`~blockservice.service.BlockService`.

    Attributes:
        verify_blocks: Hash-check payloads against their CIDs on put and on
                       blocks handed back by the exchange. Off by default: the
                       caller and the store's key derivation are trusted.
        exchange_timeout: Seconds to wait for an exchange fetch before giving up.
                          None leaves timing to the exchange itself.
        announce_concurrency: Maximum concurrent exchange announcements while
                              storing a batch.
        announce_timeout: Seconds to wait for a single announcement. An
                          announcement still pending by then is dropped and
                          logged; the write has already succeeded.

    """

    verify_blocks: bool = False
    exchange_timeout: float | None = DEFAULT_EXCHANGE_TIMEOUT
    announce_concurrency: int = DEFAULT_ANNOUNCE_CONCURRENCY
    announce_timeout: float = DEFAULT_ANNOUNCE_TIMEOUT

    def __post_init__(self) -> None:
        if self.exchange_timeout is not None and self.exchange_timeout <= 0:
            raise ValueError("exchange_timeout must be positive or None")
        if self.announce_concurrency < 1:
            raise ValueError("announce_concurrency must be at least 1")
        if self.announce_timeout <= 0:
            raise ValueError("announce_timeout must be positive")
