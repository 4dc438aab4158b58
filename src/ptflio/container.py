"""Application service container.

Builds the cache, the integration clients and the health aggregator from
``Settings`` once per application. Construction performs no I/O; ``startup()``
connects Redis and starts the cache sweep, ``shutdown()`` releases every
connection.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from redis.asyncio import Redis

from ptflio.config import Settings
from ptflio.services.base import ExternalServiceClient
from ptflio.services.cache import CacheConfig, CacheManager
from ptflio.services.credentials import CredentialReport, validate_credentials
from ptflio.services.github import GitHubConfig, GitHubService
from ptflio.services.health import HealthAggregator
from ptflio.services.instagram import InstagramConfig, InstagramService
from ptflio.services.rate_limiter import RateLimitConfig
from ptflio.services.retry import RetryPolicy
from ptflio.services.youtube import YouTubeConfig, YouTubeService

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything the HTTP layer depends on."""

    settings: Settings
    cache: CacheManager
    youtube: YouTubeService
    github: GitHubService
    instagram: InstagramService
    health: HealthAggregator
    configuration: CredentialReport | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        redis: Redis | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> "ServiceContainer":
        """Wire every component from settings.

        Args:
            settings: Application settings
            redis: Pre-built Redis client (tests); created on startup otherwise
            sleep: Delay function used between retries
        """
        retry_policy = RetryPolicy(
            max_retries=settings.retry_max_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            backoff_multiplier=settings.retry_backoff_multiplier,
        )
        client_options: dict[str, Any] = {
            "retry_policy": retry_policy,
            "timeout": settings.http_timeout,
            "user_agent": f"{settings.app_name}/{settings.app_version}",
            "sleep": sleep,
        }

        cache = CacheManager(CacheConfig.from_settings(settings), redis)
        youtube = YouTubeService(
            YouTubeConfig.from_settings(settings),
            rate_limit=RateLimitConfig(
                max_requests_per_minute=settings.youtube_max_requests_per_minute,
                max_requests_per_day=settings.youtube_max_requests_per_day,
            ),
            **client_options,
        )
        github = GitHubService(
            GitHubConfig.from_settings(settings),
            rate_limit=RateLimitConfig(
                max_requests_per_minute=settings.github_max_requests_per_minute,
                max_requests_per_day=settings.github_max_requests_per_day,
            ),
            **client_options,
        )
        instagram = InstagramService(
            InstagramConfig.from_settings(settings), **client_options
        )

        health = HealthAggregator()
        health.register("cache", cache.get_health_status)
        for client in (youtube, github, instagram):
            health.register(client.name, client.get_health_status)

        return cls(
            settings=settings,
            cache=cache,
            youtube=youtube,
            github=github,
            instagram=instagram,
            health=health,
        )

    @property
    def clients(self) -> tuple[ExternalServiceClient, ...]:
        return (self.youtube, self.github, self.instagram)

    def check_configuration(self) -> CredentialReport:
        """Validate the integration settings without contacting any service.

        A failing check never blocks startup; the affected client answers
        with a CONFIGURATION error when it is used.
        """
        settings = self.settings
        self.configuration = validate_credentials(
            {
                "YOUTUBE_API_KEY": settings.youtube_api_key.get_secret_value(),
                "YOUTUBE_CHANNEL_ID": settings.youtube_channel_id,
                "GITHUB_USERNAME": settings.github_username,
                "JUICER_FEED_ID": settings.juicer_feed_id,
            }
        )
        return self.configuration

    async def startup(self) -> None:
        report = self.check_configuration()
        await self.cache.connect()
        self.cache.start()
        logger.info(
            "services_started",
            primary_cache=self.cache.primary_connected,
            services=self.health.services,
            misconfigured=report.invalid_names,
        )

    async def shutdown(self) -> None:
        for client in self.clients:
            try:
                await client.close()
            except Exception as e:
                logger.warning("client_close_failed", service=client.name, error=str(e))
        await self.cache.close()
        logger.info("services_stopped")
