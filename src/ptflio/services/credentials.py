"""Detection of unset and placeholder credentials.

Values copied from a sample ``.env`` file ("your-api-key", "xxx") look
configured but can never authenticate. Catching them before a network call
turns a confusing upstream 401/403 into a CONFIGURATION error with a hint
on where to obtain the real value.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)

PLACEHOLDER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^your-",
        r"^placeholder",
        r"^example",
        r"^test-",
        r"^dummy",
        r"^fake",
        r"^sample",
        r"^xxx+$",
        r"^sk-xxx",
        r"^[a-z]+-[a-z]+-[a-z]+$",
    )
)

MIN_CREDENTIAL_LENGTH = 3

SUGGESTIONS: dict[str, str] = {
    "YOUTUBE_API_KEY": (
        "Create an API key in Google Cloud Console with YouTube Data API v3 enabled"
    ),
    "YOUTUBE_CHANNEL_ID": (
        "Find your channel ID in YouTube Studio under Settings > Channel > "
        "Advanced settings"
    ),
    "GITHUB_TOKEN": (
        "Generate a personal access token in GitHub Settings > Developer "
        "settings > Personal access tokens"
    ),
    "GITHUB_USERNAME": "Use your GitHub username",
    "JUICER_FEED_ID": "Copy the feed name from your Juicer dashboard",
    "JUICER_FEED_URL": "Use the public hub URL of your Juicer feed (https://www.juicer.io/...)",
}


@dataclass
class ValidationResult:
    """Outcome of a configuration check."""

    is_valid: bool
    error: str | None = None
    suggestion: str | None = None


@dataclass
class CredentialReport:
    """Aggregated result of validating several credentials."""

    results: dict[str, ValidationResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_all_valid(self) -> bool:
        return not self.errors

    @property
    def invalid_names(self) -> list[str]:
        return [name for name, result in self.results.items() if not result.is_valid]


def suggestion_for(name: str) -> str:
    return SUGGESTIONS.get(
        name, f"Please configure {name} with a valid value in your .env file"
    )


def is_placeholder(value: str) -> bool:
    return any(pattern.search(value) for pattern in PLACEHOLDER_PATTERNS)


def validate_credential(value: str | None, name: str) -> ValidationResult:
    """Check a single credential.

    Args:
        value: The configured value (None or empty when unset)
        name: Environment variable name, used in messages

    Returns:
        ValidationResult with a remediation hint when invalid
    """
    if not value:
        return ValidationResult(
            is_valid=False,
            error=f"Environment variable {name} is not set",
            suggestion=f"Please set {name} in your .env file",
        )

    # The value itself is never echoed; it may be a real secret
    if is_placeholder(value):
        return ValidationResult(
            is_valid=False,
            error=f"Environment variable {name} contains a placeholder value",
            suggestion=suggestion_for(name),
        )

    if len(value) < MIN_CREDENTIAL_LENGTH:
        return ValidationResult(
            is_valid=False,
            error=f"Environment variable {name} appears to be too short",
            suggestion=suggestion_for(name),
        )

    return ValidationResult(is_valid=True)


def validate_credentials(values: Mapping[str, str | None]) -> CredentialReport:
    """Validate several credentials at once and log any failures."""
    report = CredentialReport()
    for name, value in values.items():
        result = validate_credential(value, name)
        report.results[name] = result
        if not result.is_valid:
            report.errors.append(result.error or f"{name} is invalid")
            if result.suggestion:
                report.suggestions.append(result.suggestion)

    if not report.is_all_valid:
        logger.warning(
            "credential_validation_failed",
            invalid=report.invalid_names,
            errors=report.errors,
        )
    return report
