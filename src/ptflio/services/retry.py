"""Bounded retry with exponential backoff for outbound HTTP calls.

Each attempt either returns a successful ``httpx.Response`` or raises a
``ServiceClientError`` subclass describing the failure. Retryable failures
(HTTP 429, 5xx, transport errors) are attempted again after
``base_delay_ms * backoff_multiplier ** attempt`` milliseconds; anything else
is raised immediately.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from ptflio.core.exceptions import (
    NetworkError,
    RateLimitExceededError,
    ServiceClientError,
    UnknownServiceError,
    UpstreamAPIError,
)
from ptflio.core.logging import redact

logger = structlog.get_logger(__name__)

# Upstream error bodies are truncated to this many characters in details
MAX_ERROR_BODY = 500


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry transient failures."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retrying after ``attempt`` (0-based)."""
        return self.base_delay_ms * self.backoff_multiplier**attempt / 1000


class RetryExecutor:
    """Runs one logical request as up to ``max_retries + 1`` attempts.

    Usage:
        ```python
        executor = RetryExecutor(RetryPolicy(), service="youtube")
        response = await executor.execute(
            client, "GET", "/search", params=params, secrets=[api_key]
        )
        ```
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        service: str = "service",
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.service = service
        self._sleep = sleep

    async def execute(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        secrets: Iterable[str | None] = (),
    ) -> httpx.Response:
        """Perform the request, retrying transient failures.

        Args:
            client: HTTP client to send the request with
            method: HTTP method
            url: Absolute URL or path relative to the client's base URL
            params: Query parameters
            headers: Extra request headers
            secrets: Values to mask wherever the request is logged

        Returns:
            The first successful response

        Raises:
            ServiceClientError: Typed failure of the last attempt
        """
        secrets = tuple(s for s in secrets if s)
        safe_url = redact(str(httpx.URL(url, params=params or {})), secrets)

        for attempt in range(self.policy.max_retries + 1):
            started = time.perf_counter()
            try:
                response = await self._attempt(
                    client, method, url, params=params, headers=headers, secrets=secrets
                )
            except ServiceClientError as error:
                duration_ms = _elapsed_ms(started)
                retrying = error.retryable and attempt < self.policy.max_retries
                logger.warning(
                    "service_request_failed",
                    service=self.service,
                    method=method,
                    url=safe_url,
                    attempt=attempt,
                    duration_ms=duration_ms,
                    error_type=error.error_type.value,
                    upstream_status=error.upstream_status,
                    will_retry=retrying,
                )
                if not retrying:
                    raise
                delay = self.policy.delay_for(attempt)
                logger.info(
                    "service_request_retrying",
                    service=self.service,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                )
                await self._sleep(delay)
                continue

            logger.debug(
                "service_request_succeeded",
                service=self.service,
                method=method,
                url=safe_url,
                attempt=attempt,
                duration_ms=_elapsed_ms(started),
                status_code=response.status_code,
            )
            return response

        # range() always yields at least one attempt and every path above
        # returns or raises
        raise UnknownServiceError("Retry loop exhausted")

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        secrets: tuple[str, ...],
    ) -> httpx.Response:
        try:
            response = await client.request(method, url, params=params, headers=headers)
        except httpx.TransportError as e:
            raise NetworkError(
                redact(f"{self.service} request failed: {str(e) or type(e).__name__}", secrets),
                details={"exception": type(e).__name__},
            ) from e
        except Exception as e:
            raise UnknownServiceError(
                redact(f"{self.service} request failed: {e}", secrets),
                details={"exception": type(e).__name__},
            ) from e

        if response.is_error:
            raise self._status_error(response, secrets)
        return response

    def _status_error(
        self, response: httpx.Response, secrets: tuple[str, ...]
    ) -> ServiceClientError:
        status = response.status_code
        details = {
            "status_code": status,
            "body": redact(response.text[:MAX_ERROR_BODY], secrets),
        }
        if status == 429:
            return RateLimitExceededError(
                f"{self.service} API rate limit exceeded",
                upstream_status=status,
                details=details,
            )
        return UpstreamAPIError(
            f"{self.service} API request failed: {status} {response.reason_phrase}".rstrip(),
            upstream_status=status,
            details=details,
        )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
