"""
Flat filesystem block store.

One file per block, named after the base32 encoding of the CID and spread
over shard directories named after the next-to-last characters of the key
(the ``next-to-last/2`` layout of go-ds-flatfs). Every write lands in a
temporary file that is fsynced and then renamed into place, so a block file
is either absent or complete.
"""

import base64
import binascii
from collections.abc import (
    Sequence,
)
import logging
import os
from pathlib import (
    Path,
)
import tempfile

import trio

from blockservice.abc import (
    IBlockStore,
)
from blockservice.cid import (
    CID,
)
from blockservice.config import (
    FLATFS_EXTENSION,
    FLATFS_SHARD_WIDTH,
)
from blockservice.exceptions import (
    InvalidCIDError,
)

from .errors import (
    PartialWriteError,
    StoreClosedError,
)

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".put-"


def cid_to_key(cid: CID) -> str:
    return base64.b32encode(cid.to_bytes()).decode("ascii").rstrip("=")


def key_to_cid(key: str) -> CID:
    return CID(base64.b32decode(key + "=" * (-len(key) % 8)))


class FlatFSBlockStore(IBlockStore):
    """Block store keeping each block in its own file under ``root``."""

    def __init__(
        self,
        root: str | Path,
        shard_width: int = FLATFS_SHARD_WIDTH,
        sync: bool = True,
    ):
        """
        Initialize the flat filesystem block store.

        Args:
            root: Directory holding the shard directories
            shard_width: Number of key characters naming a shard directory
            sync: fsync block files and shard directories on write

        """
        if shard_width < 1:
            raise ValueError("shard_width must be at least 1")
        self.root = Path(root)
        self.shard_width = shard_width
        self.sync = sync
        self._closed = False
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, cid: CID) -> Path:
        key = cid_to_key(cid)
        shard = key[-self.shard_width - 1 : -1]
        return self.root / shard / (key + FLATFS_EXTENSION)

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"Block store {self.root} is closed")

    def _read(self, path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=TEMP_PREFIX)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                if self.sync:
                    f.flush()
                    os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        if self.sync:
            self._sync_dir(path.parent)

    @staticmethod
    def _sync_dir(directory: Path) -> None:
        # Directories cannot be opened for fsync on Windows
        if os.name == "nt":
            return
        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    async def has(self, cid: CID) -> bool:
        """Check if a block exists."""
        self._check_open()
        path = self._path_for(cid)
        return await trio.to_thread.run_sync(path.is_file)

    async def get(self, cid: CID) -> bytes | None:
        """Get a block by its CID."""
        self._check_open()
        return await trio.to_thread.run_sync(self._read, self._path_for(cid))

    async def put(self, cid: CID, data: bytes) -> None:
        """Store a block."""
        self._check_open()
        await trio.to_thread.run_sync(self._write, self._path_for(cid), bytes(data))

    async def put_many(self, entries: Sequence[tuple[CID, bytes]]) -> None:
        """
        Store the blocks one file at a time.

        Raises:
            PartialWriteError: If any file could not be written; the other
                entries are stored

        """
        self._check_open()
        failed: dict[int, Exception] = {}
        for index, (cid, data) in enumerate(entries):
            try:
                await trio.to_thread.run_sync(
                    self._write, self._path_for(cid), bytes(data)
                )
            except OSError as e:
                logger.debug("Failed to write block %s: %s", cid, e)
                failed[index] = e
        if failed:
            raise PartialWriteError(failed)

    async def delete(self, cid: CID) -> None:
        """Delete a block."""
        self._check_open()
        await trio.to_thread.run_sync(self._remove, self._path_for(cid))

    def get_all_cids(self) -> list[CID]:
        """Get all CIDs in the store."""
        cids = []
        for path in self.root.glob(f"*/*{FLATFS_EXTENSION}"):
            if path.name.startswith(TEMP_PREFIX) or not path.is_file():
                continue
            try:
                cids.append(key_to_cid(path.name[: -len(FLATFS_EXTENSION)]))
            except (binascii.Error, InvalidCIDError):
                logger.warning("Ignoring unexpected file %s in block store", path)
        return cids

    async def close(self) -> None:
        self._closed = True
