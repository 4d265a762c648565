from abc import (
    ABC,
    abstractmethod,
)
from collections.abc import (
    Sequence,
)

from blockservice.block import (
    Block,
)
from blockservice.cid import (
    CID,
)

# -------------------------- blockstore interface.py --------------------------


class IBlockStore(ABC):
    """
    Interface for durable content-addressed block storage.

    Blocks are keyed by CID. Implementations are expected to be linearizable
    per key; the block service adds no locking of its own.
    """

    @abstractmethod
    async def has(self, cid: CID) -> bool:
        """
        Check if a block is stored.

        :param cid: The CID of the block.
        :return: True if the block is stored, False otherwise.
        """

    @abstractmethod
    async def get(self, cid: CID) -> bytes | None:
        """
        Retrieve a block's payload.

        :param cid: The CID of the block.
        :return: The payload if stored, None otherwise.
        """

    @abstractmethod
    async def put(self, cid: CID, data: bytes) -> None:
        """
        Store a block. Storing the same CID twice leaves a single entry.

        The call returns only once the block is durable.

        :param cid: The CID of the block.
        :param data: The payload.
        """

    @abstractmethod
    async def put_many(self, entries: Sequence[tuple[CID, bytes]]) -> None:
        """
        Store several blocks as one logical batch.

        Parameters
        ----------
        entries : Sequence[tuple[CID, bytes]]
            The (CID, payload) pairs to store, in order.

        Raises
        ------
        PartialWriteError
            If some entries were stored and others were not. Any other
            exception means nothing in the batch can be assumed stored.

        """

    @abstractmethod
    async def delete(self, cid: CID) -> None:
        """
        Remove a block. Removing an absent block is not an error.

        :param cid: The CID of the block.
        """

    @abstractmethod
    def get_all_cids(self) -> list[CID]:
        """
        :return: The CIDs of all stored blocks.
        """

    @abstractmethod
    async def close(self) -> None:
        """
        Release any resources held by the store.
        """


# -------------------------- exchange interface.py --------------------------


class IExchange(ABC):
    """
    Interface for a network block exchange such as Bitswap.

    Both operations are capabilities: the block service accepts any object
    and only calls the methods it actually provides. Subclassing this
    interface is the way to declare both.
    """

    @abstractmethod
    async def get(self, cid: CID) -> Block:
        """
        Fetch a block from the network.

        :param cid: The CID of the wanted block.
        :return: The block, whose CID must equal ``cid``.
        :raises Exception: If the block could not be fetched. Retrying is
            the exchange's own business.
        """

    @abstractmethod
    async def put(self, block: Block) -> None:
        """
        Announce a newly stored block to the network.

        :param block: The block that was stored locally.
        """
