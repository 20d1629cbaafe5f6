"""Structured logging helpers shared by API and domain modules.

Modules log through stdlib loggers from :func:`get_logger` with event-style
messages and ``extra=`` fields. The handler installed by
:func:`configure_logging` renders those records with structlog, either as
console lines or as one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, List

import structlog

from ..config.loader import LoggingConfig

ROOT_LOGGER_NAME = "ledger"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the ledger root logger."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def shared_processors() -> List[Any]:
    """Processors run on every stdlib record before rendering."""

    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def build_formatter(*, json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        renderers: List[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )


def configure_logging(config: LoggingConfig | None = None, *, force: bool = False) -> None:
    """Attach a single stream handler to the ledger root logger."""

    global _configured
    if _configured and not force:
        return
    config = config or LoggingConfig()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(json_output=config.json))
    root.addHandler(handler)
    root.setLevel(logging.getLevelName(config.level))
    root.propagate = False
    _configured = True
