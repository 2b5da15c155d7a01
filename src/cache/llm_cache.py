# src/cache/llm_cache.py — v1
"""Request-scoped LLM response cache.

Entries are keyed by the fingerprint of CacheOptions and tagged with every
request id that wrote or read them. Deleting by request id drops each entry
carrying that tag, which bounds the cache's lifetime to one logical browser
operation or one test run.

Store failures degrade to a cache miss; they never fail a completion.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pagepilot.cache.base_cache_store import BaseCacheStore
from pagepilot.cache.fingerprint import compute_cache_key
from pagepilot.cache.models import CacheEntry, CacheOptions
from pagepilot.logging.logger import emit
from pagepilot.logging.models import LogLine, LogSink

logger = logging.getLogger(__name__)

_CATEGORY = "llm_cache"


class LLMCache:
    """Async-safe cache facade over a BaseCacheStore."""

    def __init__(
        self,
        store: BaseCacheStore | None = None,
        log_sink: LogSink | None = None,
    ) -> None:
        if store is None:
            from pagepilot.cache.memory_store import MemoryCacheStore
            store = MemoryCacheStore()
        self._store = store
        self._log_sink = log_sink
        self._lock = asyncio.Lock()

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def get(self, cache_options: CacheOptions, request_id: str | None) -> Any | None:
        """Return the cached value or None; tags the entry with ``request_id``."""
        key = compute_cache_key(cache_options)
        async with self._lock:
            try:
                entry = await self._store.get(key)
                if entry is None:
                    return None
                if entry.tag(request_id):
                    await self._store.put(key, entry)
            except Exception as e:  # noqa: BLE001
                self._log_failure("read", key, e)
                return None
        return entry.value

    async def set(self, cache_options: CacheOptions, value: Any, request_id: str | None) -> None:
        """Store or overwrite the entry for ``cache_options``."""
        key = compute_cache_key(cache_options)
        async with self._lock:
            try:
                existing = await self._store.get(key)
                entry = CacheEntry(
                    key=key,
                    value=value,
                    request_ids=list(existing.request_ids) if existing else [],
                )
                if existing is not None:
                    entry.created_at = existing.created_at
                entry.tag(request_id)
                await self._store.put(key, entry)
            except Exception as e:  # noqa: BLE001
                self._log_failure("write", key, e)

    async def delete_cache_for_request_id(self, request_id: str) -> int:
        """Remove every entry tagged with ``request_id``. Returns the count removed."""
        async with self._lock:
            keys = await self._store.keys_for_request_id(request_id)
            for key in keys:
                await self._store.delete(key)
        emit(
            self._log_sink,
            LogLine.build(
                _CATEGORY,
                "deleted cache entries for request",
                level=2,
                requestId=request_id,
                deleted=len(keys),
            ),
        )
        return len(keys)

    def _log_failure(self, op: str, key: str, error: Exception) -> None:
        logger.warning("LLM cache %s failed for %s: %s", op, key, error)
        emit(
            self._log_sink,
            LogLine.build(
                _CATEGORY,
                f"cache {op} failed, continuing without cache",
                level=0,
                key=key,
                error=str(error),
            ),
        )
