# tests/unit/cache/test_unit_llm_cache.py — v2
"""Tests for cache/llm_cache.py — request-id tagging, scoped deletion, failure handling."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from pagepilot.cache.llm_cache import LLMCache
from pagepilot.cache.memory_store import MemoryCacheStore
from pagepilot.cache.models import CacheOptions


def _cache_options(prompt: str = "hello") -> CacheOptions:
    return CacheOptions(model="gpt-4o", messages=[{"role": "user", "content": prompt}])


class YieldingStore(MemoryCacheStore):
    """Memory store that yields to the event loop on every read and write."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def put(self, key, entry):
        await asyncio.sleep(0)
        await super().put(key, entry)


class TestLLMCache:
    def test_defaults_to_memory_store(self):
        assert isinstance(LLMCache().store, MemoryCacheStore)

    @pytest.mark.asyncio
    async def test_miss_returns_none(self):
        assert await LLMCache().get(_cache_options(), "r1") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        cache = LLMCache()
        await cache.set(_cache_options(), {"content": "hi"}, "r1")
        assert await cache.get(_cache_options(), "r2") == {"content": "hi"}

    @pytest.mark.asyncio
    async def test_get_tags_entry_with_reader_request_id(self):
        cache = LLMCache()
        await cache.set(_cache_options(), "v", "writer")
        await cache.get(_cache_options(), "reader")
        entries = await cache.store.list_entries()
        assert entries[0].request_ids == ["writer", "reader"]

    @pytest.mark.asyncio
    async def test_set_keeps_existing_tags_and_created_at(self):
        cache = LLMCache()
        await cache.set(_cache_options(), "v1", "r1")
        first = (await cache.store.list_entries())[0]
        await cache.set(_cache_options(), "v2", "r2")
        second = (await cache.store.list_entries())[0]
        assert second.value == "v2"
        assert second.request_ids == ["r1", "r2"]
        assert second.created_at == first.created_at

    @pytest.mark.asyncio
    async def test_delete_for_request_id(self):
        cache = LLMCache()
        await cache.set(_cache_options("a"), "A", "r1")
        await cache.set(_cache_options("b"), "B", "r1")
        await cache.set(_cache_options("c"), "C", "r2")

        deleted = await cache.delete_cache_for_request_id("r1")

        assert deleted == 2
        assert await cache.get(_cache_options("a"), None) is None
        assert await cache.get(_cache_options("c"), None) == "C"

    @pytest.mark.asyncio
    async def test_delete_removes_entries_read_by_request(self):
        cache = LLMCache()
        await cache.set(_cache_options(), "v", "r1")
        await cache.get(_cache_options(), "r2")
        assert await cache.delete_cache_for_request_id("r2") == 1
        assert await cache.get(_cache_options(), "r3") is None

    @pytest.mark.asyncio
    async def test_read_failure_degrades_to_miss(self, sink):
        store = MemoryCacheStore()
        store.get = AsyncMock(side_effect=OSError("disk gone"))  # type: ignore[method-assign]
        cache = LLMCache(store, log_sink=sink)

        assert await cache.get(_cache_options(), "r1") is None
        assert sink.lines[-1].level == 0
        assert "read failed" in sink.lines[-1].message

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, sink):
        store = MemoryCacheStore()
        store.put = AsyncMock(side_effect=OSError("read-only"))  # type: ignore[method-assign]
        cache = LLMCache(store, log_sink=sink)

        await cache.set(_cache_options(), "v", "r1")

        assert "write failed" in sink.lines[-1].message
        assert len(store) == 0


class TestConcurrentAccess:
    @pytest.mark.asyncio
    async def test_interleaved_get_and_set(self):
        cache = LLMCache(YieldingStore())
        ops = []
        for i in range(5):
            ops.append(cache.set(_cache_options(f"p{i}"), f"v{i}", f"w{i}"))
            ops.append(cache.get(_cache_options(f"p{i}"), "shared"))
            ops.append(cache.set(_cache_options(f"p{i}"), f"v{i}", "shared"))
            ops.append(cache.get(_cache_options(f"p{(i + 1) % 5}"), f"w{i}"))

        await asyncio.gather(*ops)

        entries = await cache.store.list_entries()
        assert len(entries) == 5
        for entry in entries:
            i = int(entry.value[1:])
            assert entry.request_ids[0] in {f"w{i}", "shared"}
            assert len(entry.request_ids) == len(set(entry.request_ids))
            assert {f"w{i}", "shared"} <= set(entry.request_ids)
            assert set(entry.request_ids) <= {f"w{i}", "shared", f"w{(i - 1) % 5}"}

    @pytest.mark.asyncio
    async def test_concurrent_writes_then_scoped_delete(self):
        cache = LLMCache(YieldingStore())
        await asyncio.gather(*[
            cache.set(_cache_options(f"p{i % 3}"), f"v{i % 3}", f"r{i}") for i in range(9)
        ])

        entries = await cache.store.list_entries()
        assert len(entries) == 3
        assert sorted(len(e.request_ids) for e in entries) == [3, 3, 3]

        assert await cache.delete_cache_for_request_id("r4") == 1
        assert len(await cache.store.list_entries()) == 2
