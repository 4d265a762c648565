from collections.abc import (
    Sequence,
)
from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from blockservice.batch import (
        PutManyResult,
    )


class BaseBlockServiceError(Exception):
    pass


class InvalidArgumentError(BaseBlockServiceError):
    """Raised when a call is made with a malformed identifier or block."""


class InvalidCIDError(InvalidArgumentError):
    """Raised when a CID is empty or not structurally valid."""


class InvalidBlockError(InvalidArgumentError):
    """Raised when a block is missing its CID or its payload."""


class BlockNotFoundError(BaseBlockServiceError):
    """Raised when a block is neither stored locally nor resolvable remotely."""


class ExchangeFailureError(BlockNotFoundError):
    """
    Raised when the local store misses and the attached exchange fails.

    This is a ``BlockNotFoundError`` for control flow. The exchange's own
    exception is kept as ``__cause__``.
    """


class StoreFailureError(BaseBlockServiceError):
    """Raised when the local block store fails to read, write or delete."""


class BatchPutError(StoreFailureError):
    r"""
    Raised when a batch write did not persist every block.

    The attached :class:`~blockservice.batch.PutManyResult` tells which blocks
    made it to the store and which did not.

    Example\:
    ---------
        >>> try:
        ...     await service.put_many(blocks)
        ... except BatchPutError as error:
        ...     retry = [blocks[i] for i in error.result.failed]

    """

    def __init__(self, result: "PutManyResult") -> None:
        super().__init__(result)
        self.result = result

    @property
    def errors(self) -> Sequence[Exception]:
        return list(self.result.failed.values())

    def __str__(self) -> str:
        header = (
            f"{self.result.status.value} batch write: "
            f"{len(self.result.stored)} stored, {len(self.result.failed)} failed"
        )
        lines = [
            f"Error {i + 1} (block {index}): {error}"
            for i, (index, error) in enumerate(sorted(self.result.failed.items()))
        ]
        return "\n".join([header, *lines])


class BlockIntegrityError(BaseBlockServiceError):
    """Raised when a block's payload or identifier does not match what was asked."""
