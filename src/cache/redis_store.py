# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable when several automation workers should share one LLM cache.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from pagepilot.cache.base_cache_store import BaseCacheStore
from pagepilot.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "pagepilot:llm_cache:"
_INDEX_KEY = "pagepilot:llm_cache:__index__"
_REQUEST_PREFIX = "pagepilot:llm_cache:request:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store with per-request-id key sets."""

    def __init__(self, redis_url: str = "", client: Any = None) -> None:
        if client is None:
            try:
                import redis
            except ImportError as e:
                raise ImportError("redis package required: pip install redis") from e
            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return CacheEntry(**json.loads(data))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry and index it under each request id."""
        self._client.set(f"{_KEY_PREFIX}{key}", entry.model_dump_json())
        self._client.sadd(_INDEX_KEY, key)
        for request_id in entry.request_ids:
            self._client.sadd(f"{_REQUEST_PREFIX}{request_id}", key)

    async def delete(self, key: str) -> None:
        """Remove a cache entry and its request-id index memberships."""
        entry = await self.get(key)
        if entry is not None:
            for request_id in entry.request_ids:
                self._client.srem(f"{_REQUEST_PREFIX}{request_id}", key)
        self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        for key in self._client.smembers(_INDEX_KEY):
            entry = await self.get(key)
            if entry is not None:
                entries.append(entry)
        return entries

    async def keys_for_request_id(self, request_id: str) -> list[str]:
        return sorted(self._client.smembers(f"{_REQUEST_PREFIX}{request_id}"))

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
