# src/cache/memory_store.py — v1
"""In-process cache store (default CACHE_BACKEND=memory).

Entries live for the lifetime of the process. Stored entries are copies,
so callers mutating a returned entry never alter the cache behind a lock.
"""

from __future__ import annotations

from collections import defaultdict

from pagepilot.cache.base_cache_store import BaseCacheStore
from pagepilot.cache.models import CacheEntry


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed store with a request-id index."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._by_request: defaultdict[str, set[str]] = defaultdict(set)

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        return None if entry is None else entry.model_copy(deep=True)

    async def put(self, key: str, entry: CacheEntry) -> None:
        self._unindex(key)
        self._entries[key] = entry.model_copy(deep=True)
        for request_id in entry.request_ids:
            self._by_request[request_id].add(key)

    async def delete(self, key: str) -> None:
        self._unindex(key)
        self._entries.pop(key, None)

    async def list_entries(self) -> list[CacheEntry]:
        return [e.model_copy(deep=True) for e in self._entries.values()]

    async def keys_for_request_id(self, request_id: str) -> list[str]:
        return sorted(self._by_request.get(request_id, ()))

    def __len__(self) -> int:
        return len(self._entries)

    def _unindex(self, key: str) -> None:
        old = self._entries.get(key)
        if old is None:
            return
        for request_id in old.request_ids:
            keys = self._by_request.get(request_id)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._by_request[request_id]
