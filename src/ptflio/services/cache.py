"""CacheManager - two-tier caching with Redis and an in-memory fallback.

This service provides a resilient caching layer with:
- A primary tier in Redis, shared across processes (optional)
- A bounded in-memory secondary tier that always holds every written value
- TTL-based expiration, checked lazily on read and by a periodic sweep
- Hit/miss/error statistics and a derived health status

Failures of either tier are logged, counted and treated as a miss for that
tier; no method of the manager raises. When no Redis URL is configured the
manager logs once at startup and runs on the memory tier alone.

Cache Key Types:
    - youtube:{hash} - Channel video pages
    - github:{hash} - Repository listings and details
    - instagram:{hash} - Feed posts

All keys are stored under the configured namespace prefix
(``portfolio:`` by default) so a Redis instance can be shared between
deployments.
"""

import asyncio
import base64
import contextlib
import hashlib
import json
import time
import zlib
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ptflio.schemas.health import HealthReport, HealthState
from ptflio.services.memory_cache import CacheEntry, MemoryCache

if TYPE_CHECKING:
    from ptflio.config import Settings

logger = structlog.get_logger(__name__)

# Error-rate thresholds (percent of all operations)
UNHEALTHY_ERROR_RATE = 10.0
DEGRADED_ERROR_RATE = 5.0


class CacheSource(str, Enum):
    """Tier that served or stored a value."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    NONE = "none"


@dataclass(frozen=True)
class CacheConfig:
    """Cache manager settings, fixed at construction."""

    redis_url: str | None = None
    default_ttl: int = 300
    max_memory_items: int = 1000
    enable_compression: bool = False
    key_prefix: str = "portfolio:"
    sweep_interval: float = 60.0
    max_reconnect_attempts: int = 3

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CacheConfig":
        return cls(
            redis_url=settings.redis_url or None,
            default_ttl=settings.cache_default_ttl,
            max_memory_items=settings.cache_max_memory_items,
            enable_compression=settings.cache_enable_compression,
            key_prefix=settings.cache_key_prefix,
            sweep_interval=settings.cache_sweep_interval,
            max_reconnect_attempts=settings.cache_max_reconnect_attempts,
        )


@dataclass
class CacheStats:
    """Operation counters; ``hit_rate`` is always derived, never stored."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0
    secondary_entries: int = 0
    primary_connected: bool = False

    @property
    def hit_rate(self) -> float:
        """Percentage of lookups that were hits, within [0, 100]."""
        lookups = self.hits + self.misses
        if lookups <= 0:
            return 0.0
        return min(100.0, max(0.0, self.hits / lookups * 100))

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses + self.sets + self.deletes

    def as_dict(self) -> dict[str, Any]:
        return {**asdict(self), "hit_rate": self.hit_rate}


@dataclass
class CacheResult:
    """Outcome of a cache operation. Returned, never raised."""

    success: bool
    from_cache: bool = False
    source: CacheSource = CacheSource.NONE
    data: Any = None
    error: str | None = None


class CacheManager:
    """Orchestrates reads and writes across the primary and secondary tiers.

    Every instance owns its statistics, memory tier, Redis client and sweep
    task, so independent managers can coexist (one per app, one per test).

    Usage:
        ```python
        cache = CacheManager(CacheConfig(redis_url="redis://localhost:6379/0"))
        await cache.connect()
        cache.start()

        result = await cache.get(CacheManager.request_key("youtube", page=1))
        if not result.from_cache:
            ...
        await cache.close()
        ```
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        redis: Redis | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache manager.

        Args:
            config: Cache settings (defaults when omitted)
            redis: Pre-built async Redis client; created from
                ``config.redis_url`` by ``connect()`` when omitted
            clock: Wall-clock source in epoch seconds
        """
        self.config = config or CacheConfig()
        self._redis = redis
        self._clock = clock
        self._memory = MemoryCache(self.config.max_memory_items)
        self._stats = CacheStats()
        self._primary_connected = False
        self._reconnect_attempts = 0
        self._sweep_task: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def primary_connected(self) -> bool:
        return self._redis is not None and self._primary_connected

    @property
    def primary_configured(self) -> bool:
        return self._redis is not None or bool(self.config.redis_url)

    async def connect(self, *, reconnect: bool = False) -> bool:
        """Open the primary tier if one is configured.

        Args:
            reconnect: Background retry from the sweep; a failure is logged
                but not counted as an operation error

        Returns:
            True when Redis answered a PING
        """
        if self._redis is None:
            if not self.config.redis_url:
                logger.info("primary_cache_disabled", reason="no redis url configured")
                return False
            try:
                self._redis = Redis.from_url(self.config.redis_url)
            except Exception as e:
                self._stats.errors += 1
                logger.error("primary_cache_init_failed", error=str(e))
                return False

        try:
            await self._redis.ping()
        except Exception as e:
            self._primary_connected = False
            if reconnect:
                logger.warning(
                    "primary_cache_reconnect_failed",
                    attempt=self._reconnect_attempts,
                    error=str(e),
                )
            else:
                self._stats.errors += 1
                logger.error("primary_cache_connect_failed", error=str(e))
            return False

        self._primary_connected = True
        self._reconnect_attempts = 0
        logger.info("primary_cache_connected")
        return True

    def start(self) -> None:
        """Start the periodic sweep of the memory tier."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(), name="cache-sweep"
            )

    async def close(self) -> None:
        """Stop the sweep task and release the Redis connection."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                logger.warning("primary_cache_close_failed", error=str(e))
        self._primary_connected = False
        self._memory.clear()
        logger.info("cache_manager_closed")

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> CacheResult:
        """Look a key up, primary tier first.

        Returns:
            CacheResult with ``from_cache`` set on a hit. ``success`` is False
            only when every consulted tier failed.
        """
        full_key = self._full_key(key)
        now = self._clock()
        primary_ok = False
        errors: list[str] = []

        if self.primary_connected:
            try:
                entry = await self._get_from_primary(full_key, now)
                data = self._decode(entry) if entry is not None else None
            except Exception as e:
                errors.append(self._record_error("get", key, e, tier=CacheSource.PRIMARY))
            else:
                primary_ok = True
                if entry is not None:
                    self._warm_secondary(entry)
                    self._stats.hits += 1
                    logger.debug("cache_hit", key=key, source=CacheSource.PRIMARY.value)
                    return CacheResult(
                        success=True,
                        from_cache=True,
                        source=CacheSource.PRIMARY,
                        data=data,
                    )

        secondary_ok = True
        try:
            entry = self._memory.get(full_key, now)
            if entry is not None:
                data = self._decode(entry)
                self._stats.hits += 1
                logger.debug("cache_hit", key=key, source=CacheSource.SECONDARY.value)
                return CacheResult(
                    success=True,
                    from_cache=True,
                    source=CacheSource.SECONDARY,
                    data=data,
                )
        except Exception as e:
            secondary_ok = False
            self._memory.delete(full_key)
            errors.append(self._record_error("get", key, e, tier=CacheSource.SECONDARY))

        self._stats.misses += 1
        logger.debug("cache_miss", key=key)
        success = primary_ok or secondary_ok
        return CacheResult(
            success=success,
            source=CacheSource.NONE,
            error=None if success else "; ".join(errors),
        )

    async def set(self, key: str, value: Any, ttl: int | None = None) -> CacheResult:
        """Store a value in both tiers.

        The primary write is best-effort; the memory tier is always written
        so it stays a complete fallback.

        Args:
            key: Cache key (without namespace prefix)
            value: JSON-serializable value
            ttl: Lifetime in seconds (defaults to ``config.default_ttl``)
        """
        full_key = self._full_key(key)
        cache_ttl = ttl if ttl is not None and ttl > 0 else self.config.default_ttl

        try:
            payload, compressed = self._encode(value)
        except (TypeError, ValueError) as e:
            message = self._record_error("set", key, e)
            return CacheResult(success=False, error=message)

        entry = CacheEntry(
            key=full_key,
            payload=payload,
            timestamp=self._clock(),
            ttl=cache_ttl,
            compressed=compressed,
        )

        primary_ok = False
        if self.primary_connected:
            try:
                await self._redis.setex(full_key, cache_ttl, entry.to_json())
                primary_ok = True
            except Exception as e:
                self._record_error("set", key, e, tier=CacheSource.PRIMARY)

        evicted = self._memory.put(entry)
        if evicted:
            logger.warning(
                "secondary_cache_evicted",
                evicted_count=len(evicted),
                current_size=len(self._memory),
            )

        self._stats.sets += 1
        logger.debug("cache_set", key=key, ttl=cache_ttl, primary=primary_ok)
        return CacheResult(
            success=True,
            source=CacheSource.PRIMARY if primary_ok else CacheSource.SECONDARY,
        )

    async def delete(self, key: str) -> CacheResult:
        """Remove a key from both tiers. Deleting an absent key succeeds."""
        full_key = self._full_key(key)
        error = None

        if self.primary_connected:
            try:
                await self._redis.delete(full_key)
            except Exception as e:
                # The primary may still serve the old value
                error = self._record_error("delete", key, e, tier=CacheSource.PRIMARY)

        self._memory.delete(full_key)
        self._stats.deletes += 1
        logger.debug("cache_deleted", key=key)

        if error is not None:
            return CacheResult(success=False, source=CacheSource.SECONDARY, error=error)
        return CacheResult(
            success=True,
            source=CacheSource.PRIMARY if self.primary_connected else CacheSource.SECONDARY,
        )

    async def clear(self) -> CacheResult:
        """Remove every namespaced entry from both tiers.

        Only keys under ``config.key_prefix`` are removed from Redis; the
        database itself is never flushed.
        """
        self._memory.clear()
        error = None
        if self.primary_connected:
            try:
                await self._delete_primary_matching(self.config.key_prefix)
            except Exception as e:
                error = self._record_error("clear", "*", e, tier=CacheSource.PRIMARY)

        logger.info("cache_cleared", primary=self.primary_connected and error is None)
        return CacheResult(success=error is None, error=error)

    async def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``.

        Args:
            prefix: Unprefixed key prefix (e.g., "youtube")

        Returns:
            Number of distinct keys removed from either tier
        """
        full_prefix = self._full_key(prefix)
        removed = set(self._memory.delete_prefix(full_prefix))

        if self.primary_connected:
            try:
                removed.update(await self._delete_primary_matching(full_prefix))
            except Exception as e:
                self._record_error("invalidate", prefix, e, tier=CacheSource.PRIMARY)

        logger.info("cache_prefix_invalidated", prefix=prefix, count=len(removed))
        return len(removed)

    # -------------------------------------------------------------------------
    # Statistics & Health
    # -------------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """Snapshot of the counters."""
        return CacheStats(
            hits=self._stats.hits,
            misses=self._stats.misses,
            sets=self._stats.sets,
            deletes=self._stats.deletes,
            errors=self._stats.errors,
            secondary_entries=len(self._memory),
            primary_connected=self.primary_connected,
        )

    def get_health_status(self) -> HealthReport:
        """Unhealthy above 10% errors; degraded above 5% or when Redis is lost.

        A manager with no Redis configured runs on the memory tier by choice
        and is not degraded for it.
        """
        stats = self.get_stats()
        total = stats.total_operations
        error_rate = stats.errors / total * 100 if total > 0 else 0.0

        if error_rate > UNHEALTHY_ERROR_RATE:
            status = HealthState.UNHEALTHY
        elif (
            self.primary_configured and not stats.primary_connected
        ) or error_rate > DEGRADED_ERROR_RATE:
            status = HealthState.DEGRADED
        else:
            status = HealthState.HEALTHY

        return HealthReport(
            status=status,
            details={
                "primary_connected": stats.primary_connected,
                "primary_configured": self.primary_configured,
                "secondary_entries": stats.secondary_entries,
                "hit_rate": stats.hit_rate,
                "error_rate": error_rate,
                "total_operations": total,
            },
        )

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    async def sweep(self) -> int:
        """One maintenance pass over the memory tier.

        Purges expired entries, enforces the size bound and, when Redis is
        configured but down, attempts a reconnect until
        ``max_reconnect_attempts`` consecutive attempts have failed.

        Returns:
            Number of entries removed
        """
        expired = self._memory.purge_expired(self._clock())
        evicted = self._memory.enforce_limit()

        if expired:
            logger.debug(
                "secondary_cache_swept",
                removed_count=expired,
                remaining_entries=len(self._memory),
            )
        if evicted:
            logger.warning(
                "secondary_cache_evicted",
                evicted_count=len(evicted),
                current_size=len(self._memory),
            )

        if self.primary_configured and not self._primary_connected:
            await self._try_reconnect()

        return expired + len(evicted)

    async def _try_reconnect(self) -> None:
        if self._reconnect_attempts >= self.config.max_reconnect_attempts:
            return
        self._reconnect_attempts += 1
        if not await self.connect(reconnect=True) and (
            self._reconnect_attempts >= self.config.max_reconnect_attempts
        ):
            logger.error(
                "primary_cache_reconnect_abandoned",
                attempts=self._reconnect_attempts,
            )

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("cache_sweep_failed", error=str(e))

    # -------------------------------------------------------------------------
    # Cache Key Generators
    # -------------------------------------------------------------------------

    @staticmethod
    def request_key(namespace: str, **params: Any) -> str:
        """Generate a deterministic cache key for request parameters.

        Same parameters = same key = cache hit. ``None`` values are ignored
        and parameter order does not matter.

        Args:
            namespace: Integration name (e.g., "youtube")
            **params: Request options

        Returns:
            Cache key (e.g., "youtube:a3f2b1c4d5e6f7a8")
        """
        key_parts = sorted(
            f"{k}={str(v).strip()}" for k, v in params.items() if v is not None
        )
        key_string = "&".join(key_parts)
        hash_digest = hashlib.sha256(key_string.encode()).hexdigest()[:16]
        return f"{namespace}:{hash_digest}"

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _full_key(self, key: str) -> str:
        return f"{self.config.key_prefix}{key}"

    def _encode(self, value: Any) -> tuple[str, bool]:
        raw = json.dumps(value)
        if not self.config.enable_compression:
            return raw, False
        try:
            packed = zlib.compress(raw.encode("utf-8"))
            return base64.b64encode(packed).decode("ascii"), True
        except (zlib.error, MemoryError) as e:
            logger.warning("cache_compression_failed", error=str(e))
            return raw, False

    @staticmethod
    def _decode(entry: CacheEntry) -> Any:
        raw = entry.payload
        if entry.compressed:
            raw = zlib.decompress(base64.b64decode(raw)).decode("utf-8")
        return json.loads(raw)

    async def _get_from_primary(self, full_key: str, now: float) -> CacheEntry | None:
        raw = await self._redis.get(full_key)
        if not raw:
            return None
        entry = CacheEntry.from_json(raw)
        if entry.is_expired(now):
            return None
        return entry

    def _warm_secondary(self, entry: CacheEntry) -> None:
        if entry.key not in self._memory:
            self._memory.put(entry)

    async def _delete_primary_matching(self, prefix: str) -> list[str]:
        pattern = _glob_escape(prefix) + "*"
        deleted: list[str] = []
        async for raw_key in self._redis.scan_iter(match=pattern):
            key = raw_key.decode() if isinstance(raw_key, bytes) else raw_key
            await self._redis.delete(key)
            deleted.append(key)
        return deleted

    def _record_error(
        self,
        operation: str,
        key: str,
        error: Exception,
        tier: CacheSource = CacheSource.NONE,
    ) -> str:
        self._stats.errors += 1
        if tier is CacheSource.PRIMARY and isinstance(
            error, RedisConnectionError | RedisTimeoutError | OSError
        ):
            self._primary_connected = False
            self._reconnect_attempts = 0
            logger.warning("primary_cache_disconnected", error=str(error))
        message = str(error) or type(error).__name__
        logger.error(
            "cache_operation_failed",
            operation=operation,
            key=key,
            tier=tier.value,
            error=message,
        )
        return message


def _glob_escape(value: str) -> str:
    """Escape Redis glob metacharacters."""
    return "".join(f"\\{c}" if c in "*?[]\\" else c for c in value)
