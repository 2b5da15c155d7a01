# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. Request-id tags live in their own table so scoped
invalidation is an indexed delete rather than a scan.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from pagepilot.cache.base_cache_store import BaseCacheStore
from pagepilot.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS cache_request_ids (
    key TEXT NOT NULL,
    request_id TEXT NOT NULL,
    PRIMARY KEY (key, request_id)
);
CREATE INDEX IF NOT EXISTS idx_request_id ON cache_request_ids(request_id);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        row = self._conn.execute(
            "SELECT data FROM cache_entries WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return CacheEntry(**json.loads(row[0]))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry (upsert) and replace its request-id tags."""
        with self._conn:
            self._conn.execute(
                """INSERT OR REPLACE INTO cache_entries (key, data, updated_at)
                   VALUES (?, ?, ?)""",
                (key, entry.model_dump_json(), entry.updated_at.isoformat()),
            )
            self._conn.execute("DELETE FROM cache_request_ids WHERE key = ?", (key,))
            self._conn.executemany(
                "INSERT OR IGNORE INTO cache_request_ids (key, request_id) VALUES (?, ?)",
                [(key, rid) for rid in entry.request_ids],
            )

    async def delete(self, key: str) -> None:
        """Remove a cache entry and its tags."""
        with self._conn:
            self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            self._conn.execute("DELETE FROM cache_request_ids WHERE key = ?", (key,))

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        for (data,) in self._conn.execute("SELECT data FROM cache_entries"):
            try:
                entries.append(CacheEntry(**json.loads(data)))
            except (json.JSONDecodeError, ValidationError):
                continue
        return entries

    async def keys_for_request_id(self, request_id: str) -> list[str]:
        rows = self._conn.execute(
            "SELECT key FROM cache_request_ids WHERE request_id = ? ORDER BY key",
            (request_id,),
        )
        return [key for (key,) in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
