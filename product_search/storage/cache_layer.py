# product_search/storage/cache_layer.py

"""In-memory key/value cache with TTL expiry and bounded size."""

import dataclasses
import hashlib
import json
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from product_search.config.settings import Settings

logger = logging.getLogger("product_search.cache")


@dataclass
class CacheEntry:
    """A cached payload and the moment it was written."""

    data: Any
    timestamp: float
    ttl: float


def _json_default(value: Any) -> Any:
    """Make dataclasses, enums and sets JSON-serialisable."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


class CacheLayer:
    """Bounded TTL cache keyed by a digest of a string or structured key.

    Expired entries are evicted lazily when read, and swept
    opportunistically from :meth:`stats` and from a :meth:`set` that
    finds the map full.  When still full, the oldest fraction of
    entries by *write* time is dropped.  That approximates LRU by
    recency of write, not of read.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        max_size: int,
        eviction_fraction: float = Settings.CACHE_EVICTION_FRACTION,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        self.name = name
        self._default_ttl = ttl
        self._max_size = max_size
        self._eviction_fraction = eviction_fraction
        self._entries: dict[str, CacheEntry] = {}

    # ── Key derivation ───────────────────────────────────

    @staticmethod
    def cache_key(key: str | Any) -> str:
        """Hash a key into a fixed-length hex digest.

        Structured keys are serialised with sorted fields first, so
        ``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}`` collide.
        """
        if isinstance(key, str):
            text = key
        else:
            text = json.dumps(
                key,
                sort_keys=True,
                separators=(",", ":"),
                default=_json_default,
            )
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    # ── Public API ───────────────────────────────────────

    def get(self, key: str | Any) -> Any | None:
        """Return the cached value, or ``None`` when absent or expired."""
        digest = self.cache_key(key)
        entry = self._entries.get(digest)
        if entry is None:
            return None
        if self._is_expired(entry, time.time()):
            del self._entries[digest]
            logger.debug("[%s] Expired entry evicted on read", self.name)
            return None
        return entry.data

    def set(
        self,
        key: str | Any,
        data: Any,
        ttl: float | None = None,
    ) -> None:
        """Store a value, evicting old entries first when full."""
        digest = self.cache_key(key)
        if digest not in self._entries:
            self._evict_if_needed()
        self._entries[digest] = CacheEntry(
            data=data,
            timestamp=time.time(),
            ttl=ttl if ttl is not None else self._default_ttl,
        )

    def has(self, key: str | Any) -> bool:
        """True when a live (non-expired) entry exists."""
        return self.get(key) is not None

    def delete(self, key: str | Any) -> bool:
        """Remove a key; returns whether it was present."""
        return self._entries.pop(self.cache_key(key), None) is not None

    def clear(self) -> int:
        """Purge all entries and return how many were removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("[%s] Cache purged (%d entries removed)", self.name, count)
        return count

    def stats(self) -> dict[str, Any]:
        """Size figures after sweeping expired entries."""
        self._evict_expired(time.time())
        return {
            "name": self.name,
            "size": len(self._entries),
            "max_size": self._max_size,
            "default_ttl": self._default_ttl,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # ── Internals ────────────────────────────────────────

    @staticmethod
    def _is_expired(entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > entry.ttl

    def _evict_expired(self, now: float) -> None:
        """Remove every entry older than its TTL."""
        expired = [
            digest
            for digest, entry in self._entries.items()
            if self._is_expired(entry, now)
        ]
        for digest in expired:
            del self._entries[digest]
        if expired:
            logger.debug(
                "[%s] Evicted %d expired cache entries",
                self.name,
                len(expired),
            )

    def _evict_if_needed(self) -> None:
        """Make room for one new entry."""
        if len(self._entries) < self._max_size:
            return
        self._evict_expired(time.time())
        if len(self._entries) < self._max_size:
            return

        # At least one slot must be freed or the bound would be broken
        to_remove = max(
            1, math.floor(self._max_size * self._eviction_fraction)
        )
        oldest = sorted(
            self._entries.items(), key=lambda item: item[1].timestamp
        )[:to_remove]
        for digest, _entry in oldest:
            del self._entries[digest]
        logger.info(
            "[%s] Cache full, evicted %d oldest entries",
            self.name,
            len(oldest),
        )
