# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""
Validation result cache for Gatekeeper.

Thread-safe memoization of validation outcomes with TTL expiry,
plus the hit/miss counters exposed on the /stats endpoint.
"""

import copy
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from gatekeeper.config import VALIDATION_CACHE_MAX_KEYS, VALIDATION_CACHE_TTL


@dataclass(frozen=True)
class CacheStats:
    """
    Snapshot of cache counters.

    Attributes:
        hits: Attempts answered from the memo store
        misses: Attempts computed fresh
        keys: Current number of memoized entries
        ksize: Approximate total size of keys (characters)
        vsize: Approximate total size of values (characters)
    """

    hits: int
    misses: int
    keys: int
    ksize: int
    vsize: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "keys": self.keys,
            "ksize": self.ksize,
            "vsize": self.vsize,
        }


def make_cache_key(schema_key: str, data: Any) -> Optional[str]:
    """
    Builds a memo key from a schema identity and its input.

    Args:
        schema_key: Stable identity of the schema
        data: Raw fragment

    Returns:
        Key string, or None if the input has no canonical JSON form
    """
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
    return f"{schema_key}|{canonical}"


def _approx_size(value: Any) -> int:
    return len(repr(value))


class StatsCache:
    """
    Thread-safe TTL cache for validation outcomes.

    Entries expire lazily on access and on writes. When the store is full,
    the oldest entry is evicted. Values are deep-copied on the way in and on
    the way out, so callers never share a cached object.

    Example:
        >>> cache = StatsCache(ttl=60)
        >>> cache.set("k", {"page": 1})
        >>> cache.get("k")
        {'page': 1}
        >>> cache.record_attempt(hit=True)
        >>> cache.snapshot().hits
        1
    """

    def __init__(
        self,
        ttl: float = VALIDATION_CACHE_TTL,
        max_keys: int = VALIDATION_CACHE_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initializes the cache.

        Args:
            ttl: Entry time-to-live in seconds (default from config)
            max_keys: Maximum number of entries (default from config)
            clock: Monotonic time source in seconds
        """
        self._entries: "OrderedDict[str, Tuple[Any, float, int]]" = OrderedDict()
        self._lock = threading.Lock()
        self._ttl = ttl
        self._max_keys = max_keys
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._vsize = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Returns a copy of the cached value, or None if absent or expired.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at, _ = entry
            if expires_at <= self._clock():
                self._drop(key)
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Stores a value.

        Args:
            key: Cache key
            value: Value to store (copied)
            ttl: Optional per-entry TTL in seconds
        """
        if self._max_keys <= 0:
            return
        stored = copy.deepcopy(value)
        size = _approx_size(stored)
        with self._lock:
            now = self._clock()
            if key in self._entries:
                self._drop(key)
            self._evict_expired(now)
            while len(self._entries) >= self._max_keys:
                oldest = next(iter(self._entries))
                self._drop(oldest)
            self._entries[key] = (stored, now + (self._ttl if ttl is None else ttl), size)
            self._vsize += size

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            self._drop(key)
            return True

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def keys(self) -> List[str]:
        with self._lock:
            self._evict_expired(self._clock())
            return list(self._entries.keys())

    def clear(self) -> None:
        """Removes all entries. Counters are kept."""
        with self._lock:
            self._entries.clear()
            self._vsize = 0
        logger.info("[StatsCache] Cache cleared")

    def record_attempt(self, hit: bool) -> None:
        """Counts one validation attempt as a hit or a miss."""
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def snapshot(self) -> CacheStats:
        with self._lock:
            self._evict_expired(self._clock())
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                keys=len(self._entries),
                ksize=sum(len(k) for k in self._entries),
                vsize=self._vsize,
            )

    def reset_stats(self) -> None:
        """Resets hit/miss counters."""
        with self._lock:
            self._hits = 0
            self._misses = 0

    def _drop(self, key: str) -> None:
        _, _, size = self._entries.pop(key)
        self._vsize -= size

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            self._drop(key)

    @property
    def size(self) -> int:
        """Number of entries in the cache (including not yet evicted expired ones)."""
        return len(self._entries)
