"""Error envelope shared by every endpoint.

Handlers in ``ptflio.main`` render ``PtflioError.to_dict()`` in this shape;
the models exist so OpenAPI documents it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable code, e.g. API_ERROR or INVALID_TAG")
    message: str = Field(..., description="Sanitized description; never holds credentials")
    request_id: str | None = Field(None, description="Echo of the X-Request-ID header")
    details: dict[str, Any] | None = Field(
        None, description="service, type, status_code and suggestion when known"
    )


class ErrorResponse(BaseModel):
    error: ErrorDetail

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "CONFIGURATION_ERROR",
                    "message": "Environment variable YOUTUBE_API_KEY is not set",
                    "request_id": "7f1c9a52-64e1-4c55-9a8e-0b0f4f6d3a21",
                    "details": {
                        "service": "youtube",
                        "type": "CONFIGURATION",
                        "suggestion": "Set YOUTUBE_API_KEY in your environment",
                    },
                }
            }
        }
    )


def error_responses(descriptions: dict[int, str]) -> dict[int | str, dict[str, Any]]:
    """OpenAPI ``responses=`` entries documenting the error envelope per status."""
    return {
        code: {"model": ErrorResponse, "description": text}
        for code, text in descriptions.items()
    }
