# tests/unit/cache/test_file_stores.py
"""Tests for cache/json_store.py and cache/sqlite_store.py."""

from __future__ import annotations

import pytest

from sevenpools.cache.json_store import JsonCacheStore
from sevenpools.cache.sqlite_store import SqliteCacheStore


@pytest.fixture(params=["json", "sqlite"])
def file_cache(request, tmp_path):
    if request.param == "json":
        store = JsonCacheStore(tmp_path / "cache")
    else:
        store = SqliteCacheStore(tmp_path / "cache" / "cache.db")
    yield store
    store.close()


class TestFileCacheStores:
    @pytest.mark.asyncio
    async def test_round_trip(self, file_cache):
        await file_cache.set("style_capsule:person:x:all:public:2025.07:2025.07", {"ok": True})
        assert await file_cache.get(
            "style_capsule:person:x:all:public:2025.07:2025.07"
        ) == {"ok": True}

    @pytest.mark.asyncio
    async def test_overwrite(self, file_cache):
        await file_cache.set("k", {"v": 1})
        await file_cache.set("k", {"v": 2})
        assert await file_cache.get("k") == {"v": 2}

    @pytest.mark.asyncio
    async def test_delete(self, file_cache):
        await file_cache.set("k", {"v": 1})
        await file_cache.delete("k")
        assert await file_cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_if_absent(self, file_cache):
        assert await file_cache.set_if_absent("lock", {"v": 1}, ttl_seconds=60) is True
        assert await file_cache.set_if_absent("lock", {"v": 2}, ttl_seconds=60) is False
        assert await file_cache.get("lock") == {"v": 1}

    @pytest.mark.asyncio
    async def test_expired_entry_is_missing(self, file_cache):
        await file_cache.set("k", {"v": 1}, ttl_seconds=-1)
        assert await file_cache.get("k") is None
        assert await file_cache.set_if_absent("k", {"v": 2}) is True


class TestJsonCacheStore:
    @pytest.mark.asyncio
    async def test_corrupt_file_reads_as_miss(self, tmp_path):
        store = JsonCacheStore(tmp_path)
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        assert await store.get("bad") is None
