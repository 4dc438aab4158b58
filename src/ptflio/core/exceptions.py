"""Custom exception hierarchy for ptflio.

Two families live here. `PtflioError` subclasses reach the HTTP layer and
render as `{"error": {...}}`. `ServiceClientError` subclasses classify one
failed outbound call into the six-way `ErrorType` taxonomy.

Service client failures are raised as ``ServiceClientError`` subclasses at
the point they are detected (inside the HTTP wrapper) and converted into a
typed ``ServiceResult.error`` at the client pipeline boundary, so callers
never see them as exceptions.

Usage:
    from ptflio.core.exceptions import NetworkError

    raise NetworkError("Connection refused", details={"url": url})
"""

from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Error taxonomy surfaced by every service client."""

    CONFIGURATION = "CONFIGURATION"
    API = "API"
    NETWORK = "NETWORK"
    VALIDATION = "VALIDATION"
    RATE_LIMIT = "RATE_LIMIT"
    UNKNOWN = "UNKNOWN"


# HTTP status returned by the API layer for each error type
ERROR_TYPE_STATUS: dict[ErrorType, int] = {
    ErrorType.CONFIGURATION: 503,
    ErrorType.API: 502,
    ErrorType.NETWORK: 502,
    ErrorType.VALIDATION: 400,
    ErrorType.RATE_LIMIT: 429,
    ErrorType.UNKNOWN: 500,
}


class PtflioError(Exception):
    """Root of every error the API renders.

    Subclasses set `code`, `message` and `status_code` as class attributes;
    instances may override the first two and attach `details`.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if message:
            self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Body of the JSON error response; empty `details` are omitted."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


# =============================================================================
# Validation Errors (400)
# =============================================================================


class InvalidTagError(PtflioError):
    """Raised when a cache revalidation tag is not recognised."""

    code: str = "INVALID_TAG"
    message: str = "Invalid tag"
    status_code: int = 400

    def __init__(self, tag: str, allowed: list[str]) -> None:
        super().__init__(
            message=f"Invalid tag '{tag}'",
            details={"tag": tag, "allowed_tags": allowed},
        )


# =============================================================================
# External Service Errors
# =============================================================================


class ServiceClientError(PtflioError):
    """Base class for failures of an outbound service call.

    Attributes:
        error_type: Position in the fixed error taxonomy
        upstream_status: HTTP status returned by the third party, if any
        retryable: Whether the failure is transient
    """

    code: str = "SERVICE_CLIENT_ERROR"
    message: str = "Outbound service call failed"
    error_type: ErrorType = ErrorType.UNKNOWN
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.upstream_status = upstream_status
        self.status_code = ERROR_TYPE_STATUS[self.error_type]


class ServiceConfigurationError(ServiceClientError):
    """Credentials or settings are missing or malformed."""

    code: str = "SERVICE_NOT_CONFIGURED"
    message: str = "Service is not properly configured"
    error_type = ErrorType.CONFIGURATION


class UpstreamAPIError(ServiceClientError):
    """The third-party API answered with an error status."""

    code: str = "UPSTREAM_API_ERROR"
    message: str = "Upstream API request failed"
    error_type = ErrorType.API

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, upstream_status=upstream_status, details=details)
        # Server-side failures are expected to clear on their own
        self.retryable = upstream_status is not None and upstream_status >= 500


class NetworkError(ServiceClientError):
    """The request never produced a response (DNS, connect, timeout)."""

    code: str = "NETWORK_ERROR"
    message: str = "Network request failed"
    error_type = ErrorType.NETWORK
    retryable = True


class RequestValidationError(ServiceClientError):
    """Caller-supplied options were rejected before any network call."""

    code: str = "INVALID_REQUEST"
    message: str = "Invalid request options"
    error_type = ErrorType.VALIDATION


class RateLimitExceededError(ServiceClientError):
    """Local quota exhausted or the upstream answered 429."""

    code: str = "RATE_LIMITED"
    message: str = "Rate limit exceeded. Please try again later."
    error_type = ErrorType.RATE_LIMIT
    retryable = True


class UnknownServiceError(ServiceClientError):
    """Any failure outside the taxonomy above."""

    code: str = "UNKNOWN_SERVICE_ERROR"
    message: str = "An unknown error occurred"
    error_type = ErrorType.UNKNOWN


# =============================================================================
# HTTP Layer
# =============================================================================


class IntegrationError(PtflioError):
    """A service client returned a failed result to a route handler.

    The HTTP status follows the error type of the client result.
    """

    code: str = "INTEGRATION_ERROR"
    message: str = "Integration request failed"

    def __init__(
        self,
        service: str,
        error_type: ErrorType,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=f"{error_type.value}_ERROR",
            details={"service": service, "type": error_type.value, **(details or {})},
        )
        self.error_type = error_type
        self.status_code = ERROR_TYPE_STATUS[error_type]
