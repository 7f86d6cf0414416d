"""Logging setup for tong applications.

``configure`` sends structlog events and plain ``logging`` records through
one root handler, rendered either for a terminal or as JSON lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from tong.config import TongConfig
from tong.exceptions import InvalidArgument

HANDLER_NAME = "tong"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise InvalidArgument(f"Unknown log level: {name!r}")
    return level


def _final_processors(json_output: bool) -> list[Any]:
    if json_output:
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer()]


def configure(
    *, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None
) -> logging.Handler:
    """Install the tong handler on the root logger and configure structlog.

    Calling it again replaces the handler installed by the previous call;
    handlers added by other code are left alone. Returns the new handler.
    """
    root_level = _resolve_level(level)
    enrich: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *enrich,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=enrich,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_final_processors(json_output),
            ],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(root_level)
    return handler


def configure_from(
    config: TongConfig, *, stream: TextIO | None = None
) -> logging.Handler:
    return configure(
        json_output=config.log_json, level=config.log_level, stream=stream
    )
