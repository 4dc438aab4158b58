"""Tests for credential validation."""

import pytest

from ptflio.services.credentials import (
    is_placeholder,
    suggestion_for,
    validate_credential,
    validate_credentials,
)


class TestValidateCredential:
    """Tests for single-value checks."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_unset(self, value: str | None) -> None:
        result = validate_credential(value, "YOUTUBE_API_KEY")

        assert result.is_valid is False
        assert result.error == "Environment variable YOUTUBE_API_KEY is not set"
        assert result.suggestion == "Please set YOUTUBE_API_KEY in your .env file"

    @pytest.mark.parametrize(
        "value",
        [
            "your-api-key",
            "PLACEHOLDER",
            "example_token",
            "test-key",
            "dummy",
            "fake123",
            "sample-value",
            "xxxx",
            "sk-xxx123",
            "my-secret-key",
        ],
    )
    def test_placeholder(self, value: str) -> None:
        result = validate_credential(value, "GITHUB_TOKEN")

        assert result.is_valid is False
        assert "placeholder" in (result.error or "")
        assert result.suggestion == suggestion_for("GITHUB_TOKEN")

    def test_placeholder_value_not_echoed(self) -> None:
        result = validate_credential("your-real-looking-secret", "GITHUB_TOKEN")

        assert "your-real-looking-secret" not in (result.error or "")
        assert "your-real-looking-secret" not in (result.suggestion or "")

    def test_too_short(self) -> None:
        result = validate_credential("ab", "GITHUB_USERNAME")

        assert result.is_valid is False
        assert result.error == "Environment variable GITHUB_USERNAME appears to be too short"

    @pytest.mark.parametrize("value", ["octocat", "AIzaSyA1b2C3d4E5", "abc"])
    def test_valid(self, value: str) -> None:
        assert validate_credential(value, "ANY").is_valid is True


class TestHelpers:
    def test_known_suggestion(self) -> None:
        assert "YouTube Data API v3" in suggestion_for("YOUTUBE_API_KEY")

    def test_generic_suggestion(self) -> None:
        assert suggestion_for("OTHER_VAR") == (
            "Please configure OTHER_VAR with a valid value in your .env file"
        )

    def test_placeholder_patterns_are_case_insensitive(self) -> None:
        assert is_placeholder("YOUR-KEY") is True
        assert is_placeholder("octocat") is False


class TestValidateCredentials:
    """Tests for bulk validation."""

    def test_all_valid(self) -> None:
        report = validate_credentials({"GITHUB_USERNAME": "octocat", "JUICER_FEED_ID": "portfolio"})

        assert report.is_all_valid is True
        assert report.errors == []
        assert report.invalid_names == []

    def test_collects_every_failure(self) -> None:
        report = validate_credentials(
            {
                "YOUTUBE_API_KEY": None,
                "YOUTUBE_CHANNEL_ID": "your-channel-id",
                "GITHUB_USERNAME": "octocat",
            }
        )

        assert report.is_all_valid is False
        assert report.invalid_names == ["YOUTUBE_API_KEY", "YOUTUBE_CHANNEL_ID"]
        assert len(report.errors) == 2
        assert len(report.suggestions) == 2
        assert report.results["GITHUB_USERNAME"].is_valid is True
