"""Tests for the logging processors and redaction helpers."""

from ptflio.core.logging import (
    REDACTED,
    add_app_context,
    add_correlation_id,
    clear_correlation_id,
    redact,
    redact_sensitive_fields,
    set_correlation_id,
)


class TestRedact:
    def test_replaces_every_occurrence(self) -> None:
        text = "key=abc123&other=abc123"

        assert redact(text, ["abc123"]) == f"key={REDACTED}&other={REDACTED}"

    def test_ignores_empty_secrets(self) -> None:
        assert redact("unchanged", [None, ""]) == "unchanged"


class TestRedactSensitiveFields:
    """Tests for the structlog processor."""

    def test_masks_sensitive_keys(self) -> None:
        event = {
            "event": "service_request_failed",
            "api_key": "AIza-secret",
            "github_token": "ghp_secret",
            "Authorization": "Bearer x",
            "service": "youtube",
        }

        result = redact_sensitive_fields(None, "info", event)  # type: ignore[arg-type]

        assert result["api_key"] == REDACTED
        assert result["github_token"] == REDACTED
        assert result["Authorization"] == REDACTED
        assert result["service"] == "youtube"
        assert result["event"] == "service_request_failed"

    def test_cache_keys_are_kept(self) -> None:
        event = {"event": "cache_hit", "key": "youtube:abc", "key_prefix": "portfolio:"}

        result = redact_sensitive_fields(None, "debug", event)  # type: ignore[arg-type]

        assert result["key"] == "youtube:abc"
        assert result["key_prefix"] == "portfolio:"

    def test_masks_nested_values(self) -> None:
        event = {
            "event": "request",
            "headers": {"Authorization": "Bearer x", "Accept": "json"},
            "items": [{"password": "hunter2"}],
        }

        result = redact_sensitive_fields(None, "info", event)  # type: ignore[arg-type]

        assert result["headers"] == {"Authorization": REDACTED, "Accept": "json"}
        assert result["items"] == [{"password": REDACTED}]


class TestContextProcessors:
    def test_app_context_does_not_override(self) -> None:
        assert add_app_context(None, "info", {"event": "x"})["app"] == "ptflio"  # type: ignore[arg-type]
        assert add_app_context(None, "info", {"app": "other"})["app"] == "other"  # type: ignore[arg-type]

    def test_correlation_id(self) -> None:
        set_correlation_id("req-1")
        try:
            event = add_correlation_id(None, "info", {"event": "x"})  # type: ignore[arg-type]
            assert event["correlation_id"] == "req-1"
        finally:
            clear_correlation_id()

        assert "correlation_id" not in add_correlation_id(None, "info", {"event": "x"})  # type: ignore[arg-type]
