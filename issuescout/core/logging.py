"""structlog on top of stdlib logging.

Crawl phases bind ``phase`` and ``language`` through ``structlog.contextvars``
while they work on a language, so every event emitted underneath (client,
services, engine) carries them without passing them around.
"""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "asyncpg", "aiosqlite", "httpx", "httpcore")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer()
    raise ValueError(f"unknown log format: {log_format!r} (expected console or json)")


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Explicit arguments win over the environment:
        ISSUESCOUT_LOG_LEVEL:  issuescout log level (default: INFO)
        ISSUESCOUT_LOG_FORMAT: console | json (default: console)
    """
    log_level = (level or os.environ.get("ISSUESCOUT_LOG_LEVEL", "INFO")).upper()
    renderer = _renderer((log_format or os.environ.get("ISSUESCOUT_LOG_FORMAT", "console")).lower())

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    loggers["issuescout"] = {"level": log_level}
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "issuescout": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "issuescout",
                },
            },
            "root": {"handlers": ["stderr"], "level": "WARNING"},
            "loggers": loggers,
        }
    )
