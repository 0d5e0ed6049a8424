"""Logging setup for manifest-audit."""

import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "manifest_audit"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends bound context as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = getattr(record, "extra_fields", None)
        if not fields:
            return message
        return message + " " + " ".join(f"{k}={v}" for k, v in sorted(fields.items()))


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    structured: bool = False,
    rich: bool = False,
) -> None:
    """Configure the manifest_audit logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string
        structured: Emit timestamped key=value lines, for CI logs
        rich: Render through rich on stderr, for interactive use
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    handler: logging.Handler
    if rich and not structured:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(StructuredFormatter(format_string or "%(message)s"))
    else:
        if format_string is None:
            format_string = (
                "%(asctime)s %(levelname)s %(name)s %(message)s"
                if structured
                else "%(levelname)s: %(message)s"
            )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter(format_string))

    logger.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the manifest_audit hierarchy.

    Module names such as ``manifest_audit.core.analyzer`` are used as-is,
    short names are prefixed.
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that carries fields such as file and commit."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra["extra_fields"] = dict(self.extra or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger_with_context(name: str, **context: Any) -> ContextLogger:
    """Get a logger that appends the given fields to every message."""
    return ContextLogger(get_logger(name), context)
