"""Tests for ServiceContainer wiring and lifecycle."""

from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from ptflio.config import Settings
from ptflio.container import ServiceContainer
from tests.helpers import RecordingSleep


class TestCheckConfiguration:
    """Tests for the startup configuration summary."""

    def test_well_formed_settings(self, container: ServiceContainer) -> None:
        report = container.check_configuration()

        assert report.is_all_valid is True
        assert container.configuration is report

    def test_reports_unset_and_placeholder_values(
        self, test_settings: Settings, recording_sleep: RecordingSleep
    ) -> None:
        settings = test_settings.model_copy(
            update={
                "youtube_api_key": SecretStr(""),
                "juicer_feed_id": "your-feed-id",
            }
        )
        container = ServiceContainer.from_settings(settings, sleep=recording_sleep)

        report = container.check_configuration()

        assert report.invalid_names == ["YOUTUBE_API_KEY", "JUICER_FEED_ID"]
        assert "your-feed-id" not in " ".join(report.errors)


class TestLifecycle:
    """Tests for startup and shutdown."""

    @pytest.mark.asyncio
    async def test_startup_checks_configuration_and_connects(
        self, test_settings: Settings, mock_redis: MagicMock
    ) -> None:
        container = ServiceContainer.from_settings(test_settings, redis=mock_redis)

        await container.startup()
        try:
            assert container.configuration is not None
            assert container.configuration.is_all_valid is True
            assert container.cache.primary_connected is True
            mock_redis.ping.assert_awaited_once()
        finally:
            await container.shutdown()

        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_misconfiguration_does_not_block_startup(
        self, test_settings: Settings, mock_redis: MagicMock
    ) -> None:
        settings = test_settings.model_copy(update={"github_username": ""})
        container = ServiceContainer.from_settings(settings, redis=mock_redis)

        await container.startup()
        try:
            assert container.configuration is not None
            assert container.configuration.invalid_names == ["GITHUB_USERNAME"]
        finally:
            await container.shutdown()
