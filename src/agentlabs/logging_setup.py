"""
Logging for the CLI, the labs and the web app.

The console gets short human-readable lines; files always get JSON lines
so lab runs can be grepped afterwards. Records logged inside an agent run
carry the run's trace and span ids, which ties log lines to the spans
TelemetryMiddleware exports.

Settings read by configure_from_settings():

    Logging:
      Level: INFO          # name or number
      File: logs/labs.jsonl
      Json: false          # JSON on the console too
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from opentelemetry import trace

from .config_loader import Settings
from .core.errors import ConfigurationError

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"

# HTTP and SDK loggers that would drown the lab output at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}


def _trace_ids() -> Dict[str, str]:
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return {}
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}


class JsonFormatter(logging.Formatter):
    """One JSON object per record with `extra` fields and the active span's ids."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_trace_ids())
        payload.update(_extras(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


class ConsoleFormatter(logging.Formatter):
    """CONSOLE_FORMAT with any `extra` fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def level_from(value: Union[str, int, None], default: int = logging.WARNING) -> int:
    """Accept 'info', 'INFO', 20 or '20'."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    if isinstance(resolved, int):
        return resolved
    raise ConfigurationError(f"Unsupported log level in Logging:Level: {value}")


def configure_logging(
    *,
    log_level: Union[str, int, None] = "WARNING",
    log_file: Optional[Union[str, Path]] = None,
    json_format: bool = False,
    console: bool = True,
) -> logging.Logger:
    """Replace the root logger's handlers: console (text or JSON) plus an optional JSON file."""

    level = level_from(log_level)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
        root.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(JsonFormatter())
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return root


def configure_from_settings(
    settings: Settings,
    *,
    log_level: Union[str, int, None] = None,
    log_file: Optional[Union[str, Path]] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """configure_logging() driven by the Logging section; keyword arguments win."""
    if json_format is None:
        json_format = str(settings.get("Logging:Json", "false")).lower() == "true"
    return configure_logging(
        log_level=log_level if log_level is not None else settings.get("Logging:Level", "WARNING"),
        log_file=log_file or settings.get("Logging:File"),
        json_format=json_format,
    )
