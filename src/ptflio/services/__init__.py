"""Services package for ptflio.

This module exports the cache, the resilience primitives and the
integration clients.
"""

from ptflio.services.base import (
    ExternalServiceClient,
    MediaItem,
    ServiceError,
    ServiceResult,
)
from ptflio.services.cache import (
    CacheConfig,
    CacheManager,
    CacheResult,
    CacheSource,
    CacheStats,
)
from ptflio.services.credentials import (
    ValidationResult,
    validate_credential,
    validate_credentials,
)
from ptflio.services.github import GitHubConfig, GitHubService, Repository
from ptflio.services.health import HealthAggregator
from ptflio.services.instagram import InstagramConfig, InstagramService
from ptflio.services.memory_cache import CacheEntry, MemoryCache
from ptflio.services.rate_limiter import RateLimitConfig, RateLimiter
from ptflio.services.retry import RetryExecutor, RetryPolicy
from ptflio.services.youtube import YouTubeConfig, YouTubeService

__all__ = [
    # Cache
    "CacheConfig",
    "CacheEntry",
    "CacheManager",
    "CacheResult",
    "CacheSource",
    "CacheStats",
    "MemoryCache",
    # Resilience
    "RateLimitConfig",
    "RateLimiter",
    "RetryExecutor",
    "RetryPolicy",
    # Clients
    "ExternalServiceClient",
    "GitHubConfig",
    "GitHubService",
    "InstagramConfig",
    "InstagramService",
    "MediaItem",
    "Repository",
    "ServiceError",
    "ServiceResult",
    "ValidationResult",
    "YouTubeConfig",
    "YouTubeService",
    "validate_credential",
    "validate_credentials",
    # Health
    "HealthAggregator",
]
