"""
Block store errors.
"""

from collections.abc import (
    Mapping,
)


class BlockStoreError(Exception):
    """Base exception for block store failures."""

    pass


class PartialWriteError(BlockStoreError):
    """
    Raised by ``put_many`` when only part of a batch was persisted.

    ``failed`` maps the index of each entry that was not stored to the error
    that stopped it. Every other entry of the batch is stored.
    """

    def __init__(self, failed: Mapping[int, Exception]) -> None:
        super().__init__(failed)
        self.failed = dict(failed)

    def __str__(self) -> str:
        return "\n".join(
            f"Entry {index}: {error}" for index, error in sorted(self.failed.items())
        )


class StoreClosedError(BlockStoreError):
    """Raised when a closed block store is used."""

    pass
