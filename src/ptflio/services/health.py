"""HealthAggregator - one status document for every component.

Each registered probe is a zero-argument callable returning a
``HealthReport`` (or an awaitable of one), typically a component's bound
``get_health_status`` method. Probes never perform live network calls, so
checking health does not spend third-party quota.
"""

import inspect
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import structlog

from ptflio.schemas.health import (
    HealthReport,
    HealthState,
    HealthSummary,
    ServiceHealth,
    SystemHealthResponse,
)

logger = structlog.get_logger(__name__)

HealthProbe = Callable[[], HealthReport | Awaitable[HealthReport]]


class HealthAggregator:
    """Combines per-component health into a system status.

    Usage:
        ```python
        aggregator = HealthAggregator()
        aggregator.register("cache", cache.get_health_status)
        aggregator.register("youtube", youtube.get_health_status)
        document = await aggregator.check()
        ```
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._probes: dict[str, HealthProbe] = {}
        self._clock = clock
        self._started_at = clock()

    @property
    def services(self) -> list[str]:
        return list(self._probes)

    def register(self, name: str, probe: HealthProbe) -> None:
        """Add (or replace) the probe for a named component."""
        self._probes[name] = probe

    async def check(self) -> SystemHealthResponse:
        """Run every probe and build the aggregated document."""
        services = [await self._run_probe(name, probe) for name, probe in self._probes.items()]

        summary = HealthSummary(
            total=len(services),
            healthy=sum(1 for s in services if s.status == HealthState.HEALTHY),
            degraded=sum(1 for s in services if s.status == HealthState.DEGRADED),
            unhealthy=sum(1 for s in services if s.status == HealthState.UNHEALTHY),
        )

        if summary.unhealthy > 0:
            status = HealthState.UNHEALTHY
        elif summary.degraded > 0:
            status = HealthState.DEGRADED
        else:
            status = HealthState.HEALTHY

        logger.info(
            "health_check_completed",
            status=status.value,
            healthy=summary.healthy,
            degraded=summary.degraded,
            unhealthy=summary.unhealthy,
        )

        return SystemHealthResponse(
            status=status,
            timestamp=datetime.now(UTC),
            uptime=max(0.0, self._clock() - self._started_at),
            services=services,
            summary=summary,
        )

    async def _run_probe(self, name: str, probe: HealthProbe) -> ServiceHealth:
        started = self._clock()
        try:
            report = probe()
            if inspect.isawaitable(report):
                report = await report
        except Exception as e:
            logger.error("health_probe_failed", service=name, error=str(e))
            return ServiceHealth(
                service=name,
                status=HealthState.UNHEALTHY,
                response_time=self._elapsed_ms(started),
                error=str(e) or type(e).__name__,
            )

        error = None
        if report.status != HealthState.HEALTHY:
            error = report.details.get("last_error") or f"{name} service issues detected"

        return ServiceHealth(
            service=name,
            status=report.status,
            response_time=self._elapsed_ms(started),
            details=report.details,
            error=error,
        )

    def _elapsed_ms(self, started: float) -> float:
        return round(max(0.0, self._clock() - started) * 1000, 2)
