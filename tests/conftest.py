"""Pytest configuration and fixtures for ptflio tests.

This module provides reusable fixtures for:
- A controllable clock
- Mocked Redis and HTTP clients
- Settings overrides
- The FastAPI app and an async test client
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from ptflio.config import Settings
from ptflio.container import ServiceContainer
from ptflio.main import create_app
from tests.helpers import (
    GITHUB_TOKEN,
    YOUTUBE_API_KEY,
    YOUTUBE_CHANNEL_ID,
    FakeClock,
    RecordingSleep,
    async_iter,
)

# =============================================================================
# Clock Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# =============================================================================
# Redis Fixtures
# =============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create a mock Redis client that answers PING."""
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.aclose = AsyncMock(return_value=None)
    redis.scan_iter = MagicMock(side_effect=async_iter([]))
    return redis


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test-specific settings.

    No Redis URL, so the cache runs on its memory tier; every integration is
    configured with well-formed credentials and retries do not wait.
    """
    return Settings(
        app_env="development",  # type: ignore[arg-type]
        debug=True,
        log_level="DEBUG",  # type: ignore[arg-type]
        log_format="console",  # type: ignore[arg-type]
        redis_url=None,
        retry_base_delay_ms=0,
        youtube_api_key=YOUTUBE_API_KEY,  # type: ignore[arg-type]
        youtube_channel_id=YOUTUBE_CHANNEL_ID,
        github_username="octocat",
        github_token=GITHUB_TOKEN,  # type: ignore[arg-type]
        juicer_feed_id="portfolio",
    )


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def container(test_settings: Settings, recording_sleep: RecordingSleep) -> ServiceContainer:
    """Service container built from test settings (lifespan not run)."""
    return ServiceContainer.from_settings(test_settings, sleep=recording_sleep)


@pytest.fixture
def app(container: ServiceContainer) -> FastAPI:
    """Create a test FastAPI application around the test container."""
    return create_app(container=container)


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing.

    This client makes requests to the test app without starting a server.

    Usage:
        async def test_endpoint(async_client: AsyncClient):
            response = await async_client.get("/health/live")
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
