"""Client-side request ceilings for an external service.

Two independent limits guard every integration:
- a sliding 60-second window of request timestamps
- a daily counter that resets 24 hours after the previous reset

Requests beyond either limit are refused rather than queued; the caller
reports a RATE_LIMIT error instead of calling out.
"""

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

MINUTE_WINDOW_SECONDS = 60.0
DAY_WINDOW_SECONDS = 86_400.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Request ceilings for one client."""

    max_requests_per_minute: int = 100
    max_requests_per_day: int = 10000


@dataclass
class RequestTracker:
    """Recorded requests of one client.

    Attributes:
        requests: Monotonic timestamps of requests in the trailing minute
        daily_requests: Requests since ``last_reset``
        last_reset: Start of the current daily window
    """

    requests: deque[float] = field(default_factory=deque)
    daily_requests: int = 0
    last_reset: float = 0.0


class RateLimiter:
    """Sliding-window plus daily-counter limiter owned by one client.

    ``check_limit()`` is evaluated before ``record_request()``; it never
    records anything itself.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        name: str = "service",
    ) -> None:
        self.config = config or RateLimitConfig()
        self.name = name
        self._clock = clock
        self._tracker = RequestTracker(last_reset=clock())

    @property
    def requests_this_minute(self) -> int:
        self._roll_windows(self._clock())
        return len(self._tracker.requests)

    @property
    def requests_today(self) -> int:
        self._roll_windows(self._clock())
        return self._tracker.daily_requests

    def check_limit(self) -> bool:
        """Whether one more request fits under both ceilings."""
        exceeded = self._exceeded_window()
        if exceeded is None:
            return True

        window, requests, limit = exceeded
        logger.warning(
            "rate_limit_exceeded",
            service=self.name,
            window=window,
            requests=requests,
            limit=limit,
        )
        return False

    def record_request(self) -> None:
        now = self._clock()
        self._roll_windows(now)
        self._tracker.requests.append(now)
        self._tracker.daily_requests += 1

    def snapshot(self) -> dict[str, Any]:
        """Counters for health details; logs nothing and records nothing."""
        return {
            "within_limits": self._exceeded_window() is None,
            "requests_this_minute": len(self._tracker.requests),
            "requests_today": self._tracker.daily_requests,
        }

    def _exceeded_window(self) -> tuple[str, int, int] | None:
        self._roll_windows(self._clock())
        if len(self._tracker.requests) >= self.config.max_requests_per_minute:
            return "minute", len(self._tracker.requests), self.config.max_requests_per_minute
        if self._tracker.daily_requests >= self.config.max_requests_per_day:
            return "day", self._tracker.daily_requests, self.config.max_requests_per_day
        return None

    def _roll_windows(self, now: float) -> None:
        if now - self._tracker.last_reset > DAY_WINDOW_SECONDS:
            self._tracker.daily_requests = 0
            self._tracker.last_reset = now

        window_start = now - MINUTE_WINDOW_SECONDS
        requests = self._tracker.requests
        while requests and requests[0] <= window_start:
            requests.popleft()
