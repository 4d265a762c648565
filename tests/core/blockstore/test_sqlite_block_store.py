"""Unit tests for the SQLite block store."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from blockservice.blockstore import (
    SQLiteBlockStore,
    StoreClosedError,
)
from blockservice.cid import (
    compute_cid_v0,
)


class TestSQLiteBlockStore:
    @pytest.mark.trio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "blocks.db"
        cid = compute_cid_v0(b"durable")

        async with SQLiteBlockStore(path) as store:
            await store.put(cid, b"durable")

        async with SQLiteBlockStore(path) as store:
            assert await store.get(cid) == b"durable"
            assert store.get_all_cids() == [cid]

    @pytest.mark.trio
    async def test_lists_blocks_of_reopened_store(self, tmp_path):
        path = tmp_path / "blocks.db"
        cids = [compute_cid_v0(d) for d in (b"one", b"two")]
        store = SQLiteBlockStore(path)
        await store.put_many([(cid, b"payload") for cid in cids])
        await store.close()

        reopened = SQLiteBlockStore(path)

        assert set(reopened.get_all_cids()) == set(cids)
        assert await reopened.has(cids[0])
        await reopened.close()

    def test_lists_nothing_without_database_file(self, tmp_path):
        store = SQLiteBlockStore(tmp_path / "blocks.db")

        assert store.get_all_cids() == []
        assert not (tmp_path / "blocks.db").exists()

    @pytest.mark.trio
    async def test_closed_store_cannot_list(self, tmp_path):
        store = SQLiteBlockStore(tmp_path / "blocks.db")
        await store.close()

        with pytest.raises(StoreClosedError):
            store.get_all_cids()

    @pytest.mark.trio
    async def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "blocks.db"
        store = SQLiteBlockStore(path)

        await store.put(compute_cid_v0(b"x"), b"x")
        await store.close()

        assert path.exists()

    @pytest.mark.trio
    async def test_closed_store_rejects_calls(self, tmp_path):
        store = SQLiteBlockStore(tmp_path / "blocks.db")
        await store.close()
        await store.close()

        with pytest.raises(StoreClosedError):
            await store.get(compute_cid_v0(b"x"))

    @pytest.mark.trio
    async def test_put_many_is_all_or_nothing(self, tmp_path):
        store = SQLiteBlockStore(tmp_path / "blocks.db")
        first = compute_cid_v0(b"first")
        await store.put(first, b"first")
        entries = [(compute_cid_v0(d), d) for d in (b"a", b"b")]

        real = await store._ensure_connection()
        failing = MagicMock(wraps=real)
        failing.executemany.side_effect = sqlite3.OperationalError("disk I/O error")
        store.connection = failing

        with pytest.raises(sqlite3.OperationalError):
            await store.put_many(entries)
        failing.rollback.assert_called_once()

        store.connection = real
        for cid, _ in entries:
            assert not await store.has(cid)
        assert await store.has(first)
        await store.close()
