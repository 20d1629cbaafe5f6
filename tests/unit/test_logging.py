"""Tests for the structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys
from datetime import date
from decimal import Decimal

import structlog

from ledger.app.config.loader import LoggingConfig
from ledger.app.infra import logging as ledger_logging
from ledger.app.infra.logging import build_formatter, configure_logging, get_logger


def _record(message: str = "entry_created", **extra) -> logging.LogRecord:
    logger = logging.getLogger("ledger.tests")
    return logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, message, None, None, extra=extra
    )


def test_get_logger_namespaces_under_ledger_root():
    assert get_logger("gateway").name == "ledger.gateway"
    assert get_logger("ledger.app.main").name == "ledger.app.main"
    assert get_logger("ledger").name == "ledger"


def test_json_output_carries_event_level_logger_and_extras():
    line = build_formatter(json_output=True).format(
        _record(entry_id=7, value=Decimal("1.50"), day=date(2024, 1, 2))
    )
    payload = json.loads(line)

    assert payload["event"] == "entry_created"
    assert payload["level"] == "info"
    assert payload["logger"] == "ledger.tests"
    assert payload["entry_id"] == 7
    assert payload["value"] == "1.50"
    assert payload["day"] == "2024-01-02"
    assert payload["timestamp"].endswith("Z")


def test_json_output_includes_formatted_exception():
    try:
        raise RuntimeError("database went away")
    except RuntimeError:
        logger = logging.getLogger("ledger.tests")
        record = logger.makeRecord(
            logger.name,
            logging.ERROR,
            __file__,
            1,
            "database_error",
            None,
            sys.exc_info(),
        )

    payload = json.loads(build_formatter(json_output=True).format(record))

    assert payload["level"] == "error"
    assert "RuntimeError: database went away" in payload["exception"]


def test_console_output_renders_event_and_extras():
    line = build_formatter(json_output=False).format(_record(entry_id=3))

    assert "entry_created" in line
    assert "entry_id=3" in line
    assert "ledger.tests" in line


def test_configure_logging_installs_single_handler(monkeypatch):
    root = logging.getLogger(ledger_logging.ROOT_LOGGER_NAME)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "propagate", root.propagate)
    monkeypatch.setattr(root, "level", root.level)

    configure_logging(LoggingConfig(level="DEBUG", json=True), force=True)
    configure_logging(LoggingConfig(level="DEBUG", json=True), force=True)

    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert root.level == logging.DEBUG
    assert root.propagate is False
