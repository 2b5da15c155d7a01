# src/cache/base_cache_store.py — v2
"""Abstract cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pagepilot.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store (or overwrite) a cache entry."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry. Missing keys are ignored."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""

    async def keys_for_request_id(self, request_id: str) -> list[str]:
        """Keys of entries tagged with ``request_id``.

        Default implementation scans every entry; backends with an index
        override it.
        """
        return [e.key for e in await self.list_entries() if request_id in e.request_ids]

    def close(self) -> None:
        """Release backend resources."""
