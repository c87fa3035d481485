"""Structured logging for jdowser: structlog events routed through stdlib handlers.

Environment:
    JDOWSER_LOG_LEVEL   level for jdowser loggers (WARNING, or DEBUG with -v)
    JDOWSER_LOG_FORMAT  console | json (default: console)

Interactive commands log to stderr so stdout only carries rendered output.
The detached scan process has no terminal; it logs to ``jdowser.log``.
"""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

import structlog

# Third-party loggers that stay quiet regardless of -v
_QUIET_LOGGERS = ("psutil",)


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _handler_config(log_file: str | None) -> dict[str, Any]:
    if log_file:
        return {"class": "logging.FileHandler", "filename": log_file, "formatter": "structlog"}
    return {
        "class": "logging.StreamHandler",
        "stream": "ext://sys.stderr",
        "formatter": "structlog",
    }


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Configure structlog and the stdlib root handler.

    Safe to call more than once; the last call wins.
    """
    level = os.environ.get("JDOWSER_LOG_LEVEL", "DEBUG" if verbose else "WARNING").upper()
    if os.environ.get("JDOWSER_LOG_FORMAT", "console").lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_file is None)

    pre_chain = _pre_chain()
    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers: dict[str, dict[str, str]] = {"jdowser": {"level": level}}
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {"default": _handler_config(log_file)},
            "root": {"handlers": ["default"], "level": level},
            "loggers": loggers,
        }
    )
