# tests/unit/test_logging_setup.py

from __future__ import annotations
import json
import logging
import sys
from pathlib import Path

import pytest
from opentelemetry.sdk.trace import TracerProvider

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.config_loader import Settings  # type: ignore
from agentlabs.core.errors import ConfigurationError  # type: ignore
from agentlabs.logging_setup import (  # type: ignore
    ConsoleFormatter,
    JsonFormatter,
    configure_from_settings,
    level_from,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "agentlabs.test", "levelno": logging.INFO, "levelname": "INFO", "msg": msg})
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_level_from_accepts_names_and_numbers():
    assert level_from("info") == logging.INFO
    assert level_from("DEBUG") == logging.DEBUG
    assert level_from("30") == logging.WARNING
    assert level_from(15) == 15
    assert level_from(None) == logging.WARNING


def test_level_from_rejects_unknown_names():
    with pytest.raises(ConfigurationError, match="Logging:Level"):
        level_from("chatty")


def test_json_formatter_carries_extras():
    line = JsonFormatter().format(_record("tool called", tool="get_weather"))
    payload = json.loads(line)
    assert payload["message"] == "tool called"
    assert payload["tool"] == "get_weather"
    assert "trace_id" not in payload


def test_json_formatter_adds_active_span_ids():
    tracer = TracerProvider().get_tracer("test")
    with tracer.start_as_current_span("gen_ai.agent.run") as span:
        payload = json.loads(JsonFormatter().format(_record("inside")))
    ctx = span.get_span_context()
    assert payload["trace_id"] == format(ctx.trace_id, "032x")
    assert payload["span_id"] == format(ctx.span_id, "016x")


def test_console_formatter_appends_extras():
    line = ConsoleFormatter().format(_record("resolved", provider="Echo"))
    assert "INFO" in line
    assert line.endswith("resolved provider=Echo")


def test_configure_from_settings_writes_json_file(tmp_path: Path):
    log_file = tmp_path / "logs" / "labs.jsonl"
    settings = Settings({"Logging:Level": "INFO", "Logging:File": str(log_file)})
    root = configure_from_settings(settings)

    assert root.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    logging.getLogger("agentlabs.test").info("hello", extra={"session": "abc"})
    for handler in root.handlers:
        handler.flush()

    (line,) = log_file.read_text(encoding="utf-8").splitlines()
    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["session"] == "abc"


def test_keyword_arguments_override_settings():
    settings = Settings({"Logging:Level": "ERROR"})
    root = configure_from_settings(settings, log_level="debug")
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
