"""AggregationCache - memoization for computed summaries.

A pure memoization layer: every cached value is the output of a
deterministic computation over a record-store snapshot, so concurrent
misses on the same key may both compute and the last write wins.

Policies:
- TTL tiers by volatility: LONG (24h) rollups, MEDIUM (12h) per-MP/state,
  SHORT (6h) expenditure-adjacent views
- Capacity: at most ``max_keys`` entries; on overflow evict the oldest 10%
  and retry once, then give up on that key
- Memory pressure: before every write, if process memory exceeds
  ``cleanup_threshold * max_memory_mb``, evict the oldest 30%

A cache failure never fails the request: it is logged as CacheDegraded and
the value is simply not stored.

Values must be JSON-serializable. They are stored encoded and decoded on
every read, so each caller gets its own copy.
"""

import json
import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

from mplads import config
from mplads.errors import CacheDegraded
from mplads.utils.memory import get_process_memory_mb

logger = logging.getLogger(__name__)

TTL_LONG = 24 * 60 * 60
TTL_MEDIUM = 12 * 60 * 60
TTL_SHORT = 6 * 60 * 60


def make_cache_key(method: str, params: Optional[Mapping[str, Any]] = None, user_id: Optional[str] = None) -> str:
    """``{method}:{canonical-query-string}``, optionally namespaced per user.

    Parameters are sorted and None values dropped, so the key does not
    depend on parameter order.
    """
    items = sorted((k, str(v)) for k, v in (params or {}).items() if v is not None)
    key = f"{method}:{urlencode(items)}"
    if user_id:
        key = f"user:{user_id}:{key}"
    return key


@dataclass
class CacheConfig:
    """Cache limits; defaults come from the environment (see mplads.config)."""

    max_keys: int = config.CACHE_MAX_KEYS
    max_memory_mb: float = config.CACHE_MAX_MEMORY_MB
    cleanup_threshold: float = config.CACHE_CLEANUP_THRESHOLD
    overflow_evict_fraction: float = 0.1
    pressure_evict_fraction: float = 0.3
    default_ttl: int = TTL_SHORT


class AggregationCache:
    """Thread-safe TTL cache with capacity and memory-pressure eviction.

    Entries live in an insertion-ordered dict, oldest first; overwriting a
    key makes it the newest.

    Usage:
        cache = AggregationCache(CacheConfig(max_keys=500))
        payload = cache.get_or_compute(key, lambda: compute(), ttl=TTL_MEDIUM)
    """

    def __init__(
        self,
        cache_config: Optional[CacheConfig] = None,
        memory_sampler: Callable[[], float] = get_process_memory_mb,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = cache_config or CacheConfig()
        self._memory_sampler = memory_sampler
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "failed_writes": 0}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            payload, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                self._stats["misses"] += 1
                return None
            self._stats["hits"] += 1
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value. Returns False (and logs) when the cache is degraded."""
        payload = json.dumps(value)
        self._relieve_memory_pressure()

        ttl = self.config.default_ttl if ttl is None else ttl
        with self._lock:
            try:
                self._store(key, payload, ttl)
                return True
            except CacheDegraded:
                evicted = self._evict_oldest(self.config.overflow_evict_fraction)
                logger.warning(
                    f"Cache full ({len(self._entries)}/{self.config.max_keys} keys), "
                    f"evicted {evicted} oldest entries"
                )
            try:
                self._store(key, payload, ttl)
                return True
            except CacheDegraded as e:
                self._stats["failed_writes"] += 1
                logger.error(f"Cache retry failed, not caching this key: {e}")
                return False

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value
        value = compute()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def invalidate(self, pattern: str) -> int:
        """Delete every key containing ``pattern``. Returns the number removed."""
        with self._lock:
            doomed = [k for k in self._entries if pattern in k]
            for k in doomed:
                del self._entries[k]
        logger.info(f"Cache invalidation for {pattern!r}: {len(doomed)} entries removed")
        return len(doomed)

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"keys": len(self._entries), "max_keys": self.config.max_keys, **self._stats}

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def _store(self, key: str, payload: str, ttl: int) -> None:
        """Insert under the lock; raises CacheDegraded when at capacity."""
        if key not in self._entries and len(self._entries) >= self.config.max_keys:
            self._purge_expired()
            if len(self._entries) >= self.config.max_keys:
                raise CacheDegraded(f"cache full at {self.config.max_keys} keys")
        self._entries[key] = (payload, self._clock() + ttl)
        self._entries.move_to_end(key)

    def _purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def _evict_oldest(self, fraction: float) -> int:
        count = math.floor(len(self._entries) * fraction)
        for _ in range(count):
            self._entries.popitem(last=False)
        self._stats["evictions"] += count
        return count

    def _relieve_memory_pressure(self) -> None:
        try:
            used_mb = self._memory_sampler()
        except Exception as e:
            logger.warning(f"Memory sampling failed, skipping pressure check: {e}")
            return

        limit_mb = self.config.max_memory_mb * self.config.cleanup_threshold
        if used_mb <= limit_mb:
            return

        with self._lock:
            total = len(self._entries)
            evicted = self._evict_oldest(self.config.pressure_evict_fraction)
        logger.warning(
            f"Memory-based cache cleanup: {used_mb:.0f}MB used > {limit_mb:.0f}MB limit, "
            f"evicted {evicted} of {total} entries"
        )
