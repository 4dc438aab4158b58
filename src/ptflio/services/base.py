"""Shared plumbing for third-party API clients.

Every integration follows one pipeline:

    validate configuration -> check rate limit -> record request
        -> build request -> retry/backoff -> normalize -> ServiceResult

Failures are raised inside the pipeline as ``ServiceClientError``
subclasses and converted to a typed ``ServiceError`` at its boundary, so
public client methods never raise.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

import httpx
import structlog

from ptflio.core.exceptions import (
    ERROR_TYPE_STATUS,
    ErrorType,
    RateLimitExceededError,
    ServiceClientError,
    ServiceConfigurationError,
)
from ptflio.core.logging import redact
from ptflio.schemas.health import HealthReport, HealthState
from ptflio.services.credentials import ValidationResult
from ptflio.services.rate_limiter import RateLimitConfig, RateLimiter
from ptflio.services.retry import RetryExecutor, RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass
class ServiceError:
    """Typed failure returned (never raised) by a client.

    Attributes:
        type: Position in the error taxonomy
        message: Human-readable summary, free of secrets
        status_code: Upstream HTTP status, when there was a response
        details: Extra diagnostics (suggestions, limits, upstream body)
    """

    type: ErrorType
    message: str
    status_code: int | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: ServiceClientError) -> "ServiceError":
        return cls(
            type=error.error_type,
            message=error.message,
            status_code=error.upstream_status,
            details=dict(error.details),
        )

    @property
    def http_status(self) -> int:
        """Status the HTTP surface answers with for this error."""
        return ERROR_TYPE_STATUS[self.type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a client operation.

    ``metadata`` always carries ``request_duration`` (ms); integrations add
    pagination tokens and totals.
    """

    success: bool
    data: T | None = None
    error: ServiceError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class MediaItem:
    """Provider-agnostic media record (videos, posts)."""

    id: str
    source: str
    title: str
    text: str
    url: str
    thumbnail_url: str | None
    timestamp: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict for caching."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MediaItem":
        """Create from cached dict."""
        return cls(
            id=data["id"],
            source=data["source"],
            title=data.get("title", ""),
            text=data.get("text", ""),
            url=data.get("url", ""),
            thumbnail_url=data.get("thumbnail_url"),
            timestamp=data.get("timestamp", ""),
            metadata=data.get("metadata", {}),
        )


# -----------------------------------------------------------------------------
# Client Base
# -----------------------------------------------------------------------------


class ExternalServiceClient(ABC):
    """Base class for API clients with rate limiting and retries.

    Subclasses set ``name`` and ``base_url``, implement
    ``validate_configuration()`` and build their operations on ``_run()``
    and ``_request()``.
    """

    name: ClassVar[str] = "service"
    base_url: ClassVar[str] = ""

    def __init__(
        self,
        *,
        rate_limit: RateLimitConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 10.0,
        user_agent: str = "ptflio",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            rate_limit: Request ceilings for this client
            retry_policy: Retry/backoff settings
            timeout: Connection-level timeout in seconds
            user_agent: User-Agent header sent with every request
            clock: Monotonic clock for rate limiting
            sleep: Awaitable used between retry attempts
        """
        self.rate_limiter = RateLimiter(rate_limit, clock=clock, name=self.name)
        self.retry = RetryExecutor(retry_policy, sleep=sleep, service=self.name)
        self._timeout = timeout
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent, **self.default_headers()},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Extension points
    # -------------------------------------------------------------------------

    @abstractmethod
    def validate_configuration(self) -> ValidationResult:
        """Shape-check credentials and settings without calling out."""

    def default_headers(self) -> dict[str, str]:
        return {}

    def secrets(self) -> tuple[str, ...]:
        """Values that must never appear in logs or error messages."""
        return ()

    async def fetch(self, options: Any = None) -> ServiceResult[Any]:
        """Run the client's primary operation."""
        return await self._run("fetch", lambda: self._fetch(options))

    @abstractmethod
    async def _fetch(self, options: Any) -> tuple[Any, dict[str, Any]]:
        """Perform the primary operation, returning ``(data, metadata)``."""

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        call: Callable[[], Awaitable[tuple[T, dict[str, Any]]]],
    ) -> ServiceResult[T]:
        """Execute ``call`` inside the pipeline and capture every failure.

        Args:
            operation: Name used in log events
            call: Coroutine factory returning ``(data, metadata)``
        """
        started = time.perf_counter()
        try:
            validation = self.validate_configuration()
            if not validation.is_valid:
                raise ServiceConfigurationError(
                    validation.error,
                    details={"suggestion": validation.suggestion}
                    if validation.suggestion
                    else None,
                )
            data, metadata = await call()
        except ServiceClientError as e:
            error = ServiceError.from_exception(e)
            logger.warning(
                "service_operation_failed",
                service=self.name,
                operation=operation,
                error_type=error.type.value,
                error=error.message,
            )
            return ServiceResult(
                success=False,
                error=error,
                metadata={"request_duration": _elapsed_ms(started)},
            )
        except Exception as e:
            logger.error(
                "service_operation_crashed",
                service=self.name,
                operation=operation,
                error=redact(str(e), self.secrets()),
                exception=type(e).__name__,
            )
            return ServiceResult(
                success=False,
                error=ServiceError(
                    type=ErrorType.UNKNOWN,
                    message=redact(str(e), self.secrets()) or "An unknown error occurred",
                    details={"exception": type(e).__name__},
                ),
                metadata={"request_duration": _elapsed_ms(started)},
            )

        duration = _elapsed_ms(started)
        logger.info(
            "service_operation_completed",
            service=self.name,
            operation=operation,
            duration_ms=duration,
        )
        return ServiceResult(
            success=True,
            data=data,
            metadata={**metadata, "request_duration": duration},
        )

    async def _request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Rate-limited, retried request returning the decoded JSON body."""
        if not self.rate_limiter.check_limit():
            raise RateLimitExceededError(
                f"{self.name} client rate limit exceeded",
                details=self.rate_limiter.snapshot(),
            )
        self.rate_limiter.record_request()

        client = await self._get_client()
        response = await self.retry.execute(
            client,
            method,
            path,
            params=params,
            headers=headers,
            secrets=self.secrets(),
        )
        return response.json()

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def get_health_status(self) -> HealthReport:
        """Unhealthy when misconfigured, degraded without rate-limit headroom.

        Never performs a live request.
        """
        validation = self.validate_configuration()
        rate_limit = self.rate_limiter.snapshot()

        if not validation.is_valid:
            status = HealthState.UNHEALTHY
        elif not rate_limit["within_limits"]:
            status = HealthState.DEGRADED
        else:
            status = HealthState.HEALTHY

        details: dict[str, Any] = {
            "configuration_valid": validation.is_valid,
            "rate_limit": rate_limit,
        }
        if validation.error:
            details["last_error"] = validation.error
        elif not rate_limit["within_limits"]:
            details["last_error"] = f"{self.name} rate limit reached"
        return HealthReport(status=status, details=details)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
