"""
RequestCache - Read-through cache with TTL, in-flight deduplication and metrics.

Features:
- Memory-only cache entries with per-entry TTL
- Concurrent identical reads coalesced onto one transport call
- Running request metrics (hits, misses, errors, mean response time)
- Expired-entry sweep job owned by the cache instance
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, TypeVar

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from portal.services.deduplicator import RequestDeduplicator, make_signature
from portal.services.transport import Transport

T = TypeVar("T")

DEFAULT_SWEEP_INTERVAL = timedelta(minutes=5)


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: datetime
    ttl: timedelta

    @property
    def expires_at(self) -> datetime:
        return self.timestamp + self.ttl

    def is_valid(self, now: datetime) -> bool:
        """Entry is served only strictly before its expiry instant."""
        return now < self.expires_at


@dataclass
class RequestMetrics:
    """Running counters. Every read is either a hit or a miss."""

    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    average_response_time: float = 0.0  # ms, hits and misses blended
    error_count: int = 0

    def record_response_time(self, elapsed_ms: float) -> None:
        if self.total_requests == 0:
            return
        self.average_response_time += (
            elapsed_ms - self.average_response_time
        ) / self.total_requests

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage rounded to two decimals."""
        if self.total_requests == 0:
            return 0.0
        return round(self.cache_hits / self.total_requests * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "average_response_time": round(self.average_response_time, 2),
            "error_count": self.error_count,
            "hit_rate": self.hit_rate,
        }


@dataclass
class CacheStats:
    """Point-in-time snapshot of the cache."""

    size: int
    hit_rate: float
    metrics: RequestMetrics
    in_flight: int = 0
    keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "hit_rate": self.hit_rate,
            "in_flight": self.in_flight,
            "keys": self.keys,
            **self.metrics.to_dict(),
        }


class RequestCache:
    """
    Read-through cache shared by every caller of one domain client.

    Usage:
        cache = await RequestCache.create()

        news = await cache.read_through(
            transport,
            "/api/v1/news",
            {"page": 1, "pageSize": 10},
            cache_key="news:list:{...}",
            ttl=timedelta(seconds=30),
        )

        await cache.dispose()
    """

    def __init__(
        self,
        sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._deduplicator = RequestDeduplicator(debug=debug)
        self._metrics = RequestMetrics()
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._debug = debug
        self._scheduler: AsyncIOScheduler | None = None

    @classmethod
    async def create(
        cls,
        sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ) -> "RequestCache":
        """Construct a cache and start its sweep job on the running loop."""
        cache = cls(sweep_interval=sweep_interval, clock=clock, debug=debug)
        cache.start()
        return cache

    # Lifecycle

    def start(self) -> None:
        """Start the periodic expired-entry sweep. Needs a running event loop."""
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self._scheduler.add_job(
            self._sweep_job,
            "interval",
            seconds=self._sweep_interval.total_seconds(),
            id="request-cache-sweep",
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        logger.debug(
            f"Request cache sweeper started "
            f"(every {self._sweep_interval.total_seconds():.0f}s)"
        )

    async def dispose(self) -> None:
        """Stop the sweep job and cancel whatever is still in flight."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.debug("Request cache sweeper stopped")
        await self._deduplicator.cancel_all()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    async def __aenter__(self) -> "RequestCache":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    async def _sweep_job(self) -> None:
        self.sweep_expired()

    # Core read path

    async def read_through(
        self,
        transport: Transport,
        endpoint: str,
        params: dict[str, Any] | None,
        cache_key: str,
        ttl: timedelta,
        parse: Callable[[Any], Any] | None = None,
    ) -> Any:
        """
        Serve a read from cache, or from a single deduplicated transport call.

        Transport errors propagate unchanged after being counted; nothing is
        cached for a failed read and no existing entry is removed.

        ``parse`` turns the raw body into the value that is cached and shared
        with every joiner; a parse failure counts as a failed read.

        Only reads with the same endpoint, params and ``cache_key`` join one
        in-flight call: the dedup signature is suffixed with the cache key.
        If ``dispose`` cancels the shared call, callers get
        ``RequestCancelledError``.
        """
        started = time.perf_counter()
        self._metrics.total_requests += 1

        try:
            entry = self._lookup(cache_key)
            if entry is not None:
                self._metrics.cache_hits += 1
                self._log(f"HIT: {cache_key[:50]}...")
                return entry.data

            self._metrics.cache_misses += 1
            self._log(f"MISS: {cache_key[:50]}...")

            async def do_request() -> Any:
                try:
                    data = await transport.request(endpoint, params)
                    if parse is not None:
                        data = parse(data)
                except Exception:
                    self._metrics.error_count += 1
                    raise
                self.set(cache_key, data, ttl)
                return data

            # Same endpoint may be cached and parsed under several keys
            signature = f"{make_signature(endpoint, params)}#{cache_key}"
            return await self._deduplicator.dedupe(signature, do_request)
        finally:
            self._metrics.record_response_time((time.perf_counter() - started) * 1000)

    def _lookup(self, key: str) -> CacheEntry[Any] | None:
        entry = self._memory.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock()):
            del self._memory[key]
            self._log(f"EXPIRED: {key[:50]}...")
            return None
        return entry

    # Direct access

    def get(self, key: str) -> Any | None:
        """Return a valid cached value without touching the metrics."""
        entry = self._lookup(key)
        return entry.data if entry is not None else None

    def set(self, key: str, data: Any, ttl: timedelta) -> None:
        """Store or refresh an entry."""
        self._memory[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
        self._log(f"SET: {key[:50]}... (TTL: {ttl.total_seconds()}s)")

    def has(self, key: str) -> bool:
        return self._lookup(key) is not None

    # Invalidation

    def invalidate(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if key in self._memory:
            del self._memory[key]
            self._log(f"DELETE: {key[:50]}...")
            return True
        return False

    def invalidate_by_prefix(self, prefix: str) -> int:
        """
        Invalidate all keys starting with a prefix.

        Returns:
            Number of entries invalidated
        """
        keys_to_delete = [k for k in self._memory if k.startswith(prefix)]
        for key in keys_to_delete:
            del self._memory[key]

        if keys_to_delete:
            self._log(f"INVALIDATE: {len(keys_to_delete)} entries under '{prefix}'")

        return len(keys_to_delete)

    def sweep_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired_keys = [k for k, v in self._memory.items() if not v.is_valid(now)]
        for key in expired_keys:
            del self._memory[key]

        if expired_keys:
            self._log(f"SWEEP: {len(expired_keys)} expired entries removed")

        return len(expired_keys)

    def clear_all(self) -> None:
        """
        Empty the cache and the pending registry and zero the metrics.

        In-flight operations are forgotten, not cancelled: their callers
        still receive a result, and a late result is still cached.
        """
        count = len(self._memory)
        self._memory.clear()
        self._deduplicator.forget_all()
        self._deduplicator.reset_stats()
        self._metrics = RequestMetrics()
        self._log(f"CLEAR: {count} entries removed")

    # Statistics

    @property
    def size(self) -> int:
        return len(self._memory)

    def hit_rate(self) -> float:
        return self._metrics.hit_rate

    def get_metrics(self) -> RequestMetrics:
        """Copy of the current metrics."""
        return replace(self._metrics)

    def get_cache_stats(self) -> CacheStats:
        """Get cache statistics."""
        return CacheStats(
            size=len(self._memory),
            hit_rate=self._metrics.hit_rate,
            metrics=replace(self._metrics),
            in_flight=self._deduplicator.get_in_flight_count(),
            keys=list(self._memory.keys()),
        )

    def get_deduplicator_stats(self) -> dict[str, Any]:
        return self._deduplicator.get_stats().to_dict()

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[RequestCache] {message}")
