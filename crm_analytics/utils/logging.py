"""
Logging setup for the CRM analytics CLI.

Call ``configure_logging(config)`` once at CLI entry, before any engine work.
Library modules only ever use ``logging.getLogger(__name__)``; they never
call ``configure_logging`` or ``basicConfig`` themselves.

Every line carries the snapshot it was produced for. The CLI calls
``bind_log_context(snapshot=<short hash>)`` after loading a snapshot file;
lines logged before that show ``-``::

    2026-02-24T15:00:00Z [INFO] crm_analytics.engine [3f9a0c1d2e4b]: Engine run complete

JSON format (``json_format = true`` in config/default.toml [logging]) emits
one object per line, with bound context fields at the top level::

    {"ts": "2026-02-24T15:00:00Z", "level": "INFO", "logger": "...",
     "msg": "...", "snapshot": "3f9a0c1d2e4b"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from crm_analytics.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(snapshot)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came from ``extra=`` or the context filter.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_log_context: dict[str, Any] = {}


def bind_log_context(**fields: Any) -> None:
    """Attach ``fields`` to every record emitted from now on."""
    _log_context.update(fields)


def clear_log_context() -> None:
    _log_context.clear()


class _ContextFilter(logging.Filter):
    """Copy bound context onto each record; ``snapshot`` defaults to ``-``.

    Fields already set on the record through ``extra=`` take precedence.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, val in _log_context.items():
            if not hasattr(record, key):
                setattr(record, key, val)
        if not hasattr(record, "snapshot"):
            record.snapshot = "-"
        return True


class _JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line.

    Fields: ``ts``, ``level``, ``logger``, ``msg``, plus ``exc`` when an
    exception is attached and any context or ``extra=`` fields at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def _build_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_ContextFilter())
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from a ``LoggingConfig`` instance.

    Installs a stdout handler and, when ``config.log_file`` is set, a UTF-8
    file handler (parent directories are created). Both carry the context
    filter and share one formatter: JSON lines when ``config.json_format`` is
    set, otherwise ``LOG_FORMAT``. Any previous root handlers are replaced.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = [_build_handler(logging.StreamHandler(sys.stdout), level, formatter)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _build_handler(logging.FileHandler(log_path, encoding="utf-8"), level, formatter)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # Parquet writes log at DEBUG through pyarrow
    logging.getLogger("pyarrow").setLevel(logging.WARNING)
