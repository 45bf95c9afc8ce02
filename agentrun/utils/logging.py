"""
Structured logging for agentrun.

All modules log through structlog with event-style messages and key/value
context:

    logger = get_logger(__name__)
    logger.info("run_started", run_id=run_id, max_iterations=5)

Importing agentrun never touches logging configuration. Applications (and
the CLI) call configure_logging() once to pick the level and the renderer;
it is idempotent unless force=True.
"""

import logging
import sys
from typing import Any, Literal

import structlog

REDACTED = "***REDACTED***"

SENSITIVE_KEYS = ("api_key", "password", "secret", "authorization", "token")

# Token usage counters are not credentials
_SAFE_SUFFIXES = ("_tokens",)
_SAFE_KEYS = {"tokens"}

_configured = False


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if lowered in _SAFE_KEYS or lowered.endswith(_SAFE_SUFFIXES):
        return False
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def filter_sensitive_data(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor that redacts credentials from the event dict."""
    for key in list(event_dict.keys()):
        if key == "event":
            continue
        if _is_sensitive(key) and event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    level: str | None = None,
    fmt: Literal["console", "json"] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        level: Log level name, defaults to settings.log_level
        fmt: "console" for human readable output, "json" for log shippers
        force: Reconfigure even if logging was already configured
    """
    global _configured
    if _configured and not force:
        return

    from agentrun.config.settings import settings

    level_name = (level or settings.log_level).upper()
    renderer_name = fmt or settings.log_format
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=force,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        filter_sensitive_data,
        structlog.processors.StackInfoRenderer(),
    ]
    if renderer_name == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.debug))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the module name."""
    return structlog.get_logger(name)


__all__ = ["configure_logging", "filter_sensitive_data", "get_logger"]
