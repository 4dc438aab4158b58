"""structlog setup for ptflio.

Every log line passes through the same processor chain, whether it comes
from structlog or from a stdlib logger (uvicorn, redis):

    level/name -> correlation id -> app tag -> redaction -> timestamp

then renders as JSON (production) or colored key/values (development).

Usage:
    from ptflio.core.logging import configure_logging, get_logger

    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info("cache_hit", key="youtube:abc", source="primary")
"""

import logging
import re
import sys
from collections.abc import Iterable
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from ptflio.config import Settings

REDACTED = "[REDACTED]"

APP_TAG = "ptflio"

SENSITIVE_KEY_PATTERN = re.compile(
    r"password|token|secret|key|auth|credential|bearer", re.IGNORECASE
)

# Cache key fields match the pattern but are not secrets
_SAFE_KEYS = frozenset({"key", "cache_key", "keys", "key_prefix"})

# httpx logs request URLs at INFO, and YouTube URLs carry the API key
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

_request_id: ContextVar[str | None] = ContextVar("ptflio_request_id", default=None)


# =============================================================================
# Correlation IDs
# =============================================================================


def set_correlation_id(correlation_id: str) -> None:
    _request_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _request_id.get()


def clear_correlation_id() -> None:
    _request_id.set(None)


# =============================================================================
# Redaction
# =============================================================================


def redact(text: str, secrets: Iterable[str | None]) -> str:
    """Mask every occurrence of each non-empty secret in ``text``.

    Used on URLs and upstream error messages before they are logged or
    returned to callers.
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def _is_sensitive(name: object) -> bool:
    return isinstance(name, str) and bool(SENSITIVE_KEY_PATTERN.search(name))


def _mask_nested(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            name: REDACTED if _is_sensitive(name) else _mask_nested(item)
            for name, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [_mask_nested(item) for item in value]
    return value


# =============================================================================
# Processors
# =============================================================================


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask values stored under credential-looking field names, at any depth."""
    for name, value in list(event_dict.items()):
        if name == "event" or name in _SAFE_KEYS:
            continue
        event_dict[name] = REDACTED if _is_sensitive(name) else _mask_nested(value)
    return event_dict


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    if (request_id := get_correlation_id()) is not None:
        event_dict["correlation_id"] = request_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("app", APP_TAG)
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_correlation_id,
        add_app_context,
        redact_sensitive_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


# =============================================================================
# Setup
# =============================================================================


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog and stdlib logging through one handler on stdout.

    Args:
        settings: Source of the level and output format; ``get_settings()``
            when omitted
    """
    if settings is None:
        from ptflio.config import get_settings

        settings = get_settings()

    level = logging.getLevelName(settings.log_level.value)
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain = _pre_chain()
    renderer: Processor
    if settings.use_json_logs:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*pre_chain, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, conventionally ``get_logger(__name__)``."""
    return structlog.get_logger(name)
