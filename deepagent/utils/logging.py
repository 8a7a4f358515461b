"""
Structured logging built on structlog.

Usage:
    from deepagent.utils.logging import get_logger

    logger = get_logger(__name__)
    logger.info("checkpoint_saved", thread_id="t1", step=3)
"""

import logging
import sys
from typing import Any

import structlog

SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "apikey",
        "password",
        "secret",
        "authorization",
        "access_token",
        "refresh_token",
    }
)

REDACTED = "***REDACTED***"

_configured = False


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if lowered in SENSITIVE_KEYS:
        return True
    # token counters such as input_tokens/total_tokens are not secrets
    return lowered.endswith(("_secret", "_password", "_api_key"))


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and _is_sensitive(k) else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def filter_sensitive_data(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor that masks credentials before rendering."""
    for key in list(event_dict.keys()):
        if _is_sensitive(key):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact(event_dict[key])
    return event_dict


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        level: Log level name, defaults to settings.log_level
        json_logs: Render JSON lines instead of the console renderer
    """
    global _configured

    from deepagent.config import settings

    level = (level or settings.log_level).upper()
    if json_logs is None:
        json_logs = settings.json_logs

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            filter_sensitive_data,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a bound logger, configuring structlog on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


__all__ = ["configure_logging", "filter_sensitive_data", "get_logger"]
