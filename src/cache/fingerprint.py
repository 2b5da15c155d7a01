# src/cache/fingerprint.py — v3
"""Deterministic request fingerprinting for the LLM cache.

The key is a SHA-256 over a canonical JSON rendering of CacheOptions:
sorted keys, no insignificant whitespace, unset fields included as null so
that "temperature omitted" and "temperature=None" hash the same.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pagepilot.cache.models import CacheOptions


def canonical_json(data: Any) -> str:
    """Stable JSON text for hashing."""
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )


def compute_cache_key(cache_options: CacheOptions) -> str:
    """Return the hex SHA-256 fingerprint of the key material."""
    material = canonical_json(cache_options.model_dump(mode="json"))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
