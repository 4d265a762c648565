"""
Block service: the single entry point for reading and writing blocks.

Blocks are read from the local block store first and, when missing there,
fetched through the attached exchange (for example Bitswap). Writes always go
to the local store; the exchange is told about them afterwards on a
best-effort basis.
"""

from collections.abc import (
    Iterable,
)
import logging
import math
from types import (
    TracebackType,
)
from typing import (
    Any,
)

import trio

from blockservice.abc import (
    IBlockStore,
)
from blockservice.batch import (
    PutManyResult,
)
from blockservice.block import (
    Block,
    validate_block,
)
from blockservice.blockstore.errors import (
    PartialWriteError,
)
from blockservice.cid import (
    CID,
    ensure_cid,
)
from blockservice.config import (
    BlockServiceConfig,
)
from blockservice.exceptions import (
    BatchPutError,
    BlockIntegrityError,
    BlockNotFoundError,
    ExchangeFailureError,
    InvalidArgumentError,
    InvalidBlockError,
    StoreFailureError,
)
from blockservice.exchange import (
    ANNOUNCE,
    FETCH,
    ExchangeSlot,
    supports,
)

logger = logging.getLogger(__name__)


class BlockService:
    """
    Coordinates a local block store and an optional exchange.

    The service keeps no block state of its own. Its only mutable state is
    the exchange slot, which can be swapped at any time with
    :meth:`set_exchange` and :meth:`unset_exchange`; calls already in flight
    keep using the exchange they started with.
    """

    def __init__(
        self,
        block_store: IBlockStore,
        exchange: Any = None,
        config: BlockServiceConfig | None = None,
    ):
        """
        Initialize the block service.

        Args:
            block_store: Local store that owns persisted blocks
            exchange: Optional exchange to attach right away
            config: Service options (defaults to ``BlockServiceConfig()``)

        """
        self.block_store = block_store
        self.config = config or BlockServiceConfig()
        self._exchange = ExchangeSlot()
        if exchange is not None:
            self.set_exchange(exchange)

    async def __aenter__(self) -> "BlockService":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the local block store."""
        await self.block_store.close()

    # Exchange lifecycle

    def set_exchange(self, exchange: Any) -> None:
        """
        Attach an exchange, replacing any exchange already attached.

        Args:
            exchange: Any object; its ``get`` and ``put`` coroutines are used
                when present

        Raises:
            InvalidArgumentError: If ``exchange`` is None

        """
        if exchange is None:
            raise InvalidArgumentError(
                "Cannot attach None as exchange, use unset_exchange() instead"
            )
        self._exchange.set(exchange)
        logger.info(
            "Exchange attached (fetch=%s, announce=%s)",
            supports(exchange, FETCH),
            supports(exchange, ANNOUNCE),
        )

    def unset_exchange(self) -> None:
        """Detach the exchange. Subsequent reads only use the local store."""
        if self._exchange.clear() is not None:
            logger.info("Exchange detached, block service is offline")

    def has_exchange(self) -> bool:
        return self._exchange.is_set()

    @property
    def exchange(self) -> Any:
        return self._exchange.get()

    # Reads

    async def get(self, cid: CID | bytes | str) -> Block:
        """
        Get a block, fetching it through the exchange if it is not stored.

        Blocks fetched through the exchange are returned to the caller only;
        they are not written to the local store.

        Args:
            cid: The CID of the block

        Returns:
            The block, whose CID equals the requested CID

        Raises:
            InvalidCIDError: If ``cid`` is malformed
            BlockNotFoundError: If the block is not stored and no exchange can
                fetch it
            ExchangeFailureError: If the exchange failed to fetch it
            BlockIntegrityError: If the exchange supplied a different block
            StoreFailureError: If the local store failed to read

        """
        cid = ensure_cid(cid)

        try:
            data = await self.block_store.get(cid)
        except Exception as e:
            raise StoreFailureError(f"Failed to read block {cid}: {e}") from e

        if data is not None:
            logger.debug("Block %s served from local store", cid)
            return Block(cid, data)

        exchange = self._exchange.get()
        if exchange is None:
            raise BlockNotFoundError(
                f"Block {cid} is not stored locally and no exchange is attached"
            )
        if not supports(exchange, FETCH):
            raise BlockNotFoundError(
                f"Block {cid} is not stored locally and the exchange cannot fetch"
            )
        return await self._fetch(exchange, cid)

    async def get_many(self, cids: Iterable[CID | bytes | str]) -> list[Block]:
        """
        Get several blocks, in the order requested.

        All CIDs are validated before any block is read. The first failure is
        raised.
        """
        wanted = [ensure_cid(cid) for cid in cids]
        blocks = []
        for cid in wanted:
            blocks.append(await self.get(cid))
        return blocks

    async def _fetch(self, exchange: Any, cid: CID) -> Block:
        logger.debug("Block %s not stored locally, asking the exchange", cid)
        timeout = self.config.exchange_timeout
        try:
            with trio.fail_after(math.inf if timeout is None else timeout):
                block = await exchange.get(cid)
        except trio.TooSlowError as e:
            if timeout is None:
                raise ExchangeFailureError(
                    f"Exchange failed to fetch block {cid}: {e!r}"
                ) from e
            raise ExchangeFailureError(
                f"Timed out after {timeout}s fetching block {cid} from the exchange"
            ) from e
        except Exception as e:
            raise ExchangeFailureError(
                f"Exchange failed to fetch block {cid}: {e}"
            ) from e

        if not isinstance(block, Block):
            raise ExchangeFailureError(
                f"Exchange returned {type(block).__name__} instead of block {cid}"
            )
        if block.cid != cid:
            raise BlockIntegrityError(
                f"Exchange returned block {block.cid} when {cid} was requested"
            )
        self._check_integrity(block)

        logger.debug("Block %s fetched through the exchange", cid)
        return block

    # Writes

    async def put(self, block: Block) -> None:
        """
        Store a block and announce it to the exchange, if one is attached.

        The call returns once the local store has the block. Announcement
        failures are logged and do not fail the call; an announcement that
        takes longer than ``announce_timeout`` is abandoned.

        Args:
            block: The block to store

        Raises:
            InvalidBlockError: If ``block`` is malformed
            BlockIntegrityError: If ``verify_blocks`` is on and the payload
                does not match the CID
            StoreFailureError: If the local store failed to write

        """
        validate_block(block)
        self._check_integrity(block)

        try:
            await self.block_store.put(block.cid, block.data)
        except Exception as e:
            raise StoreFailureError(f"Failed to store block {block.cid}: {e}") from e
        logger.debug("Stored block %s (%d bytes)", block.cid, block.size)

        exchange = self._exchange.get()
        if exchange is not None and supports(exchange, ANNOUNCE):
            await self._announce(exchange, block)

    async def put_many(self, blocks: Iterable[Block]) -> PutManyResult:
        """
        Store blocks as one batch and announce each stored block.

        The batch is not atomic beyond what the local store provides. Blocks
        that did get stored are announced even when others failed.

        Args:
            blocks: The blocks to store

        Returns:
            A successful :class:`PutManyResult`

        Raises:
            InvalidBlockError: If any block is malformed (nothing is stored)
            BlockIntegrityError: If ``verify_blocks`` is on and a payload does
                not match its CID (nothing is stored)
            BatchPutError: If some or all blocks were not stored; its
                ``result`` tells which

        """
        batch = list(blocks)
        for index, block in enumerate(batch):
            try:
                validate_block(block)
            except InvalidBlockError as e:
                raise InvalidBlockError(f"Block {index} of batch: {e}") from e
            self._check_integrity(block)

        if not batch:
            return PutManyResult.complete(batch)

        cause: Exception | None = None
        try:
            await self.block_store.put_many([(b.cid, b.data) for b in batch])
        except PartialWriteError as e:
            cause = e
            result = PutManyResult.from_failures(batch, e.failed)
        except Exception as e:
            cause = e
            failed: dict[int, Exception] = dict.fromkeys(range(len(batch)), e)
            result = PutManyResult.from_failures(batch, failed)
        else:
            result = PutManyResult.complete(batch)

        logger.debug(
            "Batch of %d blocks: %d stored, %d failed",
            len(batch),
            len(result.stored),
            len(result.failed),
        )

        await self._announce_many(result.stored_blocks)

        if cause is not None:
            raise BatchPutError(result) from cause
        return result

    async def delete(self, cid: CID | bytes | str) -> None:
        """
        Remove a block from the local store.

        Deleting a block that is not stored succeeds. The exchange is never
        consulted.

        Raises:
            InvalidCIDError: If ``cid`` is malformed
            StoreFailureError: If the local store failed to delete

        """
        cid = ensure_cid(cid)
        try:
            await self.block_store.delete(cid)
        except Exception as e:
            raise StoreFailureError(f"Failed to delete block {cid}: {e}") from e
        logger.debug("Deleted block %s", cid)

    # Announcements

    async def _announce(self, exchange: Any, block: Block) -> None:
        timeout = self.config.announce_timeout
        try:
            with trio.move_on_after(timeout) as scope:
                await exchange.put(block)
        except Exception as e:
            logger.warning("Failed to announce block %s: %s", block.cid, e)
            return
        if scope.cancelled_caught:
            logger.warning("Gave up announcing block %s after %ss", block.cid, timeout)

    async def _announce_limited(
        self, limiter: trio.CapacityLimiter, exchange: Any, block: Block
    ) -> None:
        async with limiter:
            await self._announce(exchange, block)

    async def _announce_many(self, blocks: list[Block]) -> None:
        exchange = self._exchange.get()
        if exchange is None or not blocks:
            return
        if not supports(exchange, ANNOUNCE):
            logger.debug("Exchange cannot announce, skipping %d blocks", len(blocks))
            return

        limiter = trio.CapacityLimiter(self.config.announce_concurrency)
        async with trio.open_nursery() as nursery:
            for block in blocks:
                nursery.start_soon(self._announce_limited, limiter, exchange, block)

    def _check_integrity(self, block: Block) -> None:
        if self.config.verify_blocks and not block.verify():
            raise BlockIntegrityError(
                f"Payload of block {block.cid} does not hash to its CID"
            )
