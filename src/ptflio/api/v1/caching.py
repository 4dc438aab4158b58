"""Read-through caching shared by the feed endpoints.

Serve from the cache when possible; otherwise call the client, store a
successful result and return it. Failed client results become an
``IntegrationError`` whose HTTP status follows the error type.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from ptflio.core.exceptions import ErrorType, IntegrationError
from ptflio.services.base import ServiceError, ServiceResult
from ptflio.services.cache import CacheManager, CacheSource

logger = structlog.get_logger(__name__)


@dataclass
class ReadThroughResult:
    data: Any
    metadata: dict[str, Any] = field(default_factory=dict)
    cached: bool = False
    source: CacheSource = CacheSource.NONE


async def read_through(
    cache: CacheManager,
    *,
    service: str,
    key: str,
    ttl: int,
    fetch: Callable[[], Awaitable[ServiceResult[Any]]],
    serialize: Callable[[Any], Any],
    enabled: bool = True,
) -> ReadThroughResult:
    """Fetch through the cache.

    Args:
        cache: Cache manager
        service: Integration name, used in errors and logs
        key: Cache key (see ``CacheManager.request_key``)
        ttl: Lifetime of a stored result in seconds
        fetch: Calls the client on a miss
        serialize: Converts the client's data to JSON-compatible values
        enabled: When False the cache is bypassed entirely

    Raises:
        IntegrationError: The client returned a failed result
    """
    if enabled:
        hit = await cache.get(key)
        if hit.from_cache and isinstance(hit.data, dict):
            return ReadThroughResult(
                data=hit.data.get("data"),
                metadata=hit.data.get("metadata", {}),
                cached=True,
                source=hit.source,
            )

    result = await fetch()
    if not result.success:
        error = result.error or ServiceError(ErrorType.UNKNOWN, "Request failed")
        raise IntegrationError(service, error.type, error.message, details=error.details)

    payload = {"data": serialize(result.data), "metadata": result.metadata}
    if enabled:
        stored = await cache.set(key, payload, ttl)
        if not stored.success:
            logger.warning("response_not_cached", service=service, key=key, error=stored.error)

    return ReadThroughResult(data=payload["data"], metadata=payload["metadata"])
