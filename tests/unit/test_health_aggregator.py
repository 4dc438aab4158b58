"""Tests for HealthAggregator."""

import pytest

from ptflio.schemas.health import HealthReport, HealthState
from ptflio.services.health import HealthAggregator
from tests.helpers import FakeClock


def report(status: HealthState, **details: object) -> HealthReport:
    return HealthReport(status=status, details=dict(details))


class TestHealthAggregator:
    """Tests for combining component reports."""

    @pytest.mark.asyncio
    async def test_all_healthy(self, clock: FakeClock) -> None:
        aggregator = HealthAggregator(clock=clock)
        aggregator.register("cache", lambda: report(HealthState.HEALTHY))
        aggregator.register("youtube", lambda: report(HealthState.HEALTHY))

        document = await aggregator.check()

        assert document.status == HealthState.HEALTHY
        assert document.summary.total == 2
        assert document.summary.healthy == 2
        assert [s.service for s in document.services] == ["cache", "youtube"]
        assert all(s.error is None for s in document.services)

    @pytest.mark.asyncio
    async def test_degraded_component(self, clock: FakeClock) -> None:
        aggregator = HealthAggregator(clock=clock)
        aggregator.register("cache", lambda: report(HealthState.DEGRADED))
        aggregator.register("github", lambda: report(HealthState.HEALTHY))

        document = await aggregator.check()

        assert document.status == HealthState.DEGRADED
        assert document.services[0].error == "cache service issues detected"

    @pytest.mark.asyncio
    async def test_unhealthy_wins(self, clock: FakeClock) -> None:
        aggregator = HealthAggregator(clock=clock)
        aggregator.register("cache", lambda: report(HealthState.DEGRADED))
        aggregator.register(
            "youtube",
            lambda: report(HealthState.UNHEALTHY, last_error="Invalid YouTube API key format"),
        )

        document = await aggregator.check()

        assert document.status == HealthState.UNHEALTHY
        assert document.summary.unhealthy == 1
        assert document.summary.degraded == 1
        assert document.services[1].error == "Invalid YouTube API key format"

    @pytest.mark.asyncio
    async def test_async_probe(self, clock: FakeClock) -> None:
        async def probe() -> HealthReport:
            return report(HealthState.HEALTHY, configuration_valid=True)

        aggregator = HealthAggregator(clock=clock)
        aggregator.register("instagram", probe)

        document = await aggregator.check()

        assert document.services[0].details == {"configuration_valid": True}

    @pytest.mark.asyncio
    async def test_failing_probe_is_unhealthy(self, clock: FakeClock) -> None:
        def probe() -> HealthReport:
            raise RuntimeError("probe exploded")

        aggregator = HealthAggregator(clock=clock)
        aggregator.register("github", probe)

        document = await aggregator.check()

        assert document.status == HealthState.UNHEALTHY
        assert document.services[0].error == "probe exploded"

    @pytest.mark.asyncio
    async def test_no_components(self, clock: FakeClock) -> None:
        document = await HealthAggregator(clock=clock).check()

        assert document.status == HealthState.HEALTHY
        assert document.summary.total == 0

    @pytest.mark.asyncio
    async def test_uptime(self, clock: FakeClock) -> None:
        aggregator = HealthAggregator(clock=clock)
        clock.advance(42)

        document = await aggregator.check()

        assert document.uptime == pytest.approx(42)

    def test_register_replaces(self, clock: FakeClock) -> None:
        aggregator = HealthAggregator(clock=clock)
        aggregator.register("cache", lambda: report(HealthState.HEALTHY))
        aggregator.register("cache", lambda: report(HealthState.DEGRADED))

        assert aggregator.services == ["cache"]
