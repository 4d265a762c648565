"""
Outcome of a batch write.
"""

from collections.abc import (
    Sequence,
)
from dataclasses import (
    dataclass,
    field,
)
from enum import (
    Enum,
)

from blockservice.block import (
    Block,
)
from blockservice.cid import (
    CID,
)


class BatchStatus(Enum):
    SUCCESS = "complete"
    PARTIAL = "partial"
    FAILURE = "failed"


@dataclass
class PutManyResult:
    """
    Which blocks of a batch reached the local store.

    Attributes:
        blocks: The blocks of the batch, in the caller's order.
        stored: Indices into ``blocks`` that were persisted.
        failed: Index into ``blocks`` -> the error that kept it out.

    """

    blocks: Sequence[Block]
    stored: list[int] = field(default_factory=list)
    failed: dict[int, Exception] = field(default_factory=dict)

    @property
    def status(self) -> BatchStatus:
        if not self.failed:
            return BatchStatus.SUCCESS
        if self.stored:
            return BatchStatus.PARTIAL
        return BatchStatus.FAILURE

    @property
    def ok(self) -> bool:
        return self.status is BatchStatus.SUCCESS

    @property
    def stored_blocks(self) -> list[Block]:
        return [self.blocks[i] for i in self.stored]

    @property
    def stored_cids(self) -> list[CID]:
        return [self.blocks[i].cid for i in self.stored]

    @property
    def failed_cids(self) -> list[CID]:
        return [self.blocks[i].cid for i in sorted(self.failed)]

    @classmethod
    def complete(cls, blocks: Sequence[Block]) -> "PutManyResult":
        return cls(blocks, stored=list(range(len(blocks))))

    @classmethod
    def from_failures(
        cls, blocks: Sequence[Block], failed: dict[int, Exception]
    ) -> "PutManyResult":
        stored = [i for i in range(len(blocks)) if i not in failed]
        return cls(blocks, stored=stored, failed=dict(failed))
