"""Logging for the maintenance gate.

Channels, by level:

- DEBUG: startup configuration dump
- INFO: startup, shutdown and recovery of the health endpoint
- ACCESS: one line per handled request (custom level between INFO and WARNING)
- WARNING: non-fatal configuration problems
- ERROR: failed health checks, body read/close failures, template failures

Call sites attach structured fields through ``extra`` (``remote_addr``,
``status_code``...). How those fields are shown is decided by the formatter
installed by :func:`setup_logging`: a single human-readable line, optionally
colored, or one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

ACCESS = 25
"""Numeric level of the ACCESS channel."""

logging.addLevelName(ACCESS, "ACCESS")

# Structured fields rendered by the formatters, in display order.
CONTEXT_FIELDS: tuple[str, ...] = (
    "event",
    "url",
    "remote_addr",
    "method",
    "path",
    "status_code",
    "error",
)

LEVEL_COLORS: dict[str, str] = {
    "DEBUG": "\033[1;34m",
    "INFO": "\033[1;32m",
    "ACCESS": "\033[1;35m",
    "WARNING": "\033[1;33m",
    "ERROR": "\033[1;31m",
    "CRITICAL": "\033[1;31m",
}
_RESET = "\033[0m"


def _component(record: logging.LogRecord) -> str:
    """Last dotted part of the logger name, e.g. ``monitor``."""
    return record.name.rpartition(".")[2]


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class StructuredFormatter(logging.Formatter):
    """One line per record::

        2024-05-01 12:00:00.123 [ACCESS  ] [routes    ] [remote_addr=... status_code=307] msg

    With ``color=True`` the level tag is wrapped in an ANSI color sequence.
    """

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self.color = color

    def _level_tag(self, levelname: str) -> str:
        tag = f"{levelname:8}"
        if self.color and levelname in LEVEL_COLORS:
            return f"{LEVEL_COLORS[levelname]}{tag}{_RESET}"
        return tag

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        line = [
            created.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
            f"[{self._level_tag(record.levelname)}]",
            f"[{_component(record):10}]",
        ]

        context = _context(record)
        if context:
            line.append("[" + " ".join(f"{k}={v}" for k, v in context.items()) + "]")

        line.append(record.getMessage())
        if record.exc_info:
            line.append(self.formatException(record.exc_info))
        return " ".join(line)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "component": _component(record),
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextAdapter(logging.LoggerAdapter[logging.Logger]):
    """Adapter that merges fixed fields into every record it emits.

    Usage:
        log = get_logger(__name__).with_context(url=config.health_check_url)
        log.error("Health check of %s failed", url, extra={"event": "became_unhealthy"})
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs

    def access(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log ``msg`` on the ACCESS channel."""
        self.log(ACCESS, msg, *args, **kwargs)


class GateLogger(logging.Logger):
    """Logger class with an ACCESS method and bound-context adapters."""

    def with_context(self, **context: Any) -> ContextAdapter:
        """Return an adapter adding ``context`` to every record."""
        return ContextAdapter(self, context)

    def access(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log ``msg`` on the ACCESS channel."""
        if self.isEnabledFor(ACCESS):
            self._log(ACCESS, msg, args, **kwargs)


logging.setLoggerClass(GateLogger)


def get_logger(name: str) -> GateLogger:
    """Return the GateLogger for ``name`` (typically ``__name__``)."""
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    color: bool = False,
    replace_handlers: bool = True,
) -> None:
    """Install a stdout handler on the root logger.

    Args:
        level: DEBUG, INFO, ACCESS, WARNING or ERROR. Unknown names mean INFO.
        json_format: Emit JSON lines instead of structured text.
        color: Colorize level tags. Ignored for JSON output.
        replace_handlers: Drop handlers already on the root logger first.
            Pass False to keep handlers installed by other libraries.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter: logging.Formatter = (
        JSONFormatter() if json_format else StructuredFormatter(color=color)
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(numeric_level)
    stream_handler.setFormatter(formatter)

    root = logging.getLogger()
    if replace_handlers:
        for existing in list(root.handlers):
            root.removeHandler(existing)
    root.addHandler(stream_handler)
    root.setLevel(numeric_level)

    logging.getLogger("maintenance_gate").setLevel(numeric_level)


__all__ = [
    "ACCESS",
    "CONTEXT_FIELDS",
    "LEVEL_COLORS",
    "ContextAdapter",
    "GateLogger",
    "JSONFormatter",
    "StructuredFormatter",
    "get_logger",
    "setup_logging",
]
