"""
Immutable content-addressed blocks.
"""

from dataclasses import (
    dataclass,
)
from typing import (
    Any,
)

from blockservice.cid import (
    CID,
    CODEC_RAW,
    DEFAULT_HASH_FUNC,
    compute_cid,
    verify_cid,
)
from blockservice.config import (
    DEFAULT_CID_VERSION,
)
from blockservice.exceptions import (
    InvalidBlockError,
)


@dataclass(frozen=True)
class Block:
    """
    A (CID, payload) pair.

    The CID is expected to be the hash of ``data``; this is not checked on
    construction. Use :meth:`verify` or enable ``verify_blocks`` on the
    service to enforce it. A ``bytearray`` or ``memoryview`` payload is
    copied into ``bytes`` so blocks stay immutable and hashable.
    """

    cid: CID
    data: bytes

    def __post_init__(self) -> None:
        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_data(
        cls,
        data: bytes,
        version: int = DEFAULT_CID_VERSION,
        codec: int = CODEC_RAW,
        hash_func: str = DEFAULT_HASH_FUNC,
    ) -> "Block":
        return cls(compute_cid(data, version, codec, hash_func), data)

    @property
    def size(self) -> int:
        return len(self.data)

    def verify(self) -> bool:
        """Return True if ``data`` hashes to ``cid``."""
        return verify_cid(self.cid, self.data)

    def __repr__(self) -> str:
        return f"Block(cid={self.cid!s}, size={self.size})"


def validate_block(block: Any) -> Block:
    """
    Check that ``block`` carries a CID and a byte payload.

    :param block: the object handed to the service.
    :return: the same block.
    :raises InvalidBlockError: if it is not a well-formed block.
    """
    if not isinstance(block, Block):
        raise InvalidBlockError(f"Expected a Block, got {type(block).__name__}")
    if not isinstance(block.cid, CID):
        raise InvalidBlockError("Block has no valid CID")
    if not isinstance(block.data, bytes):
        raise InvalidBlockError(f"Block {block.cid} has no payload")
    return block
