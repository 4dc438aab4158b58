"""Tests for RateLimiter."""

from unittest.mock import patch

import pytest

from ptflio.services.rate_limiter import RateLimitConfig, RateLimiter
from tests.helpers import FakeClock


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        RateLimitConfig(max_requests_per_minute=2, max_requests_per_day=100),
        clock=clock,
        name="youtube",
    )


class TestMinuteWindow:
    """Tests for the sliding 60-second window."""

    def test_allows_until_limit(self, limiter: RateLimiter) -> None:
        """Two recorded requests exhaust a per-minute limit of two."""
        assert limiter.check_limit() is True
        limiter.record_request()
        assert limiter.check_limit() is True
        limiter.record_request()

        assert limiter.check_limit() is False
        assert limiter.requests_this_minute == 2

    def test_check_does_not_record(self, limiter: RateLimiter) -> None:
        for _ in range(5):
            limiter.check_limit()

        assert limiter.requests_this_minute == 0
        assert limiter.requests_today == 0

    def test_old_requests_age_out(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.record_request()
        clock.advance(30)
        limiter.record_request()
        assert limiter.check_limit() is False

        clock.advance(30)

        # The first request is now exactly 60 seconds old
        assert limiter.check_limit() is True
        assert limiter.requests_this_minute == 1

    def test_snapshot_reports_refusal(self, limiter: RateLimiter) -> None:
        limiter.record_request()
        limiter.record_request()

        assert limiter.check_limit() is False
        assert limiter.snapshot()["within_limits"] is False

    def test_snapshot_at_ceiling_does_not_warn(self, limiter: RateLimiter) -> None:
        limiter.record_request()
        limiter.record_request()

        with patch("ptflio.services.rate_limiter.logger") as mock_logger:
            snapshot = limiter.snapshot()

        assert snapshot["within_limits"] is False
        mock_logger.warning.assert_not_called()
        assert limiter.requests_this_minute == 2


class TestDailyWindow:
    """Tests for the 24-hour counter."""

    def test_daily_limit(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(max_requests_per_minute=100, max_requests_per_day=3),
            clock=clock,
        )
        for _ in range(3):
            limiter.record_request()
            clock.advance(61)

        assert limiter.requests_this_minute == 0
        assert limiter.check_limit() is False

    def test_daily_counter_resets_after_a_day(self, clock: FakeClock) -> None:
        limiter = RateLimiter(
            RateLimitConfig(max_requests_per_minute=100, max_requests_per_day=1),
            clock=clock,
        )
        limiter.record_request()
        assert limiter.check_limit() is False

        clock.advance(86_400)
        assert limiter.check_limit() is False

        clock.advance(1)
        assert limiter.check_limit() is True
        assert limiter.requests_today == 0


class TestSnapshot:
    def test_snapshot_counters(self, limiter: RateLimiter) -> None:
        limiter.record_request()

        assert limiter.snapshot() == {
            "within_limits": True,
            "requests_this_minute": 1,
            "requests_today": 1,
        }

    def test_limiters_are_independent(self, clock: FakeClock) -> None:
        first = RateLimiter(RateLimitConfig(max_requests_per_minute=1), clock=clock)
        second = RateLimiter(RateLimitConfig(max_requests_per_minute=1), clock=clock)

        first.record_request()

        assert first.check_limit() is False
        assert second.check_limit() is True
