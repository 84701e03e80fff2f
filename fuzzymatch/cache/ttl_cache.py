"""Bounded, time-expiring in-process cache with single-flight loading.

Entries expire a fixed time after insertion, independent of access. Beyond
``maxsize`` entries the least recently used entry is evicted. Concurrent
``get_or_compute`` calls for the same missing key share one computation:
the first caller computes, the others await its result.

The cache is meant to be used from a single event loop; it holds no locks.
"""

import asyncio
import inspect
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar, Union

import structlog

from ..common.metrics import MetricsCollector

logger = structlog.get_logger("cache.ttl")

V = TypeVar("V")

_MISSING = object()


@dataclass
class CacheEntry(Generic[V]):
    value: V
    inserted_at: float


class TTLCache(Generic[V]):
    """LRU cache whose entries are treated as absent after ``ttl`` seconds.

    Parameters
    - maxsize: Maximum number of live entries
    - ttl: Seconds after insertion at which an entry expires
    - name: Label used in logs and cache metrics
    - clock: Monotonic time source (injectable for tests)
    - metrics: Optional collector receiving hit/miss counts
    """

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsCollector] = None,
    ):
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")
        if ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        self.maxsize = maxsize
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._metrics = metrics
        self._entries: "OrderedDict[Hashable, CacheEntry[V]]" = OrderedDict()
        self._inflight: Dict[Hashable, asyncio.Future] = {}

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self._lookup(key, touch=False) is not _MISSING

    def _lookup(self, key: Hashable, touch: bool = True) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if self._clock() - entry.inserted_at >= self.ttl:
            del self._entries[key]
            self.expirations += 1
            return _MISSING
        if touch:
            self._entries.move_to_end(key)
        return entry.value

    def _record(self, hit: bool) -> None:
        if hit:
            self.hits += 1
            if self._metrics:
                self._metrics.record_cache_hit(self.name)
        else:
            self.misses += 1
            if self._metrics:
                self._metrics.record_cache_miss(self.name)

    def get(self, key: Hashable, default: Optional[V] = None) -> Optional[V]:
        """Return the live value for ``key`` or ``default``."""
        value = self._lookup(key)
        if value is _MISSING:
            return default
        return value

    def put(self, key: Hashable, value: V) -> None:
        """Insert or replace ``key``, evicting least recently used entries."""
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
            self.evictions += 1

    async def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Union[V, Awaitable[V]]],
    ) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss.

        ``compute`` may be a plain callable or return an awaitable. Failures
        are propagated to every waiting caller and nothing is stored. When the
        computing caller is cancelled, waiting callers retry the load
        themselves instead of inheriting its cancellation.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            self._record(hit=True)
            return value

        pending = self._inflight.get(key)
        if pending is not None:
            self._record(hit=True)
            try:
                # Shield so a cancelled waiter does not cancel the shared load.
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
            # The computing caller was cancelled, not this one: load again.
            logger.debug("Shared load cancelled, retrying", cache=self.name)
            return await self.get_or_compute(key, compute)

        self._record(hit=False)
        future = asyncio.get_running_loop().create_future()
        # Marks the exception as retrieved when no other caller is waiting.
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._inflight[key] = future
        try:
            result = compute()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            self.put(key, result)
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)

    def invalidate(self, key: Hashable) -> bool:
        """Drop ``key``; returns whether an entry was present."""
        return self._entries.pop(key, None) is not None

    def invalidate_where(self, predicate: Callable[[Hashable], bool]) -> int:
        """Drop every entry whose key satisfies ``predicate``."""
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Cache entries invalidated", cache=self.name, count=len(doomed))
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Cache cleared", cache=self.name)

    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": len(self._entries),
            "maxsize": self.maxsize,
            "ttl_seconds": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "inflight": len(self._inflight),
        }
