"""Shared logging configuration using structlog."""

from __future__ import annotations

import logging
import os
import sys

import structlog

ENV_LOG_LEVEL = "RV_LOG_LEVEL"
ENV_LOG_JSON = "RV_LOG_JSON"
ENV_LOG_FILE = "RV_LOG_FILE"


def _resolve_level(value: str | int | None, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    return logging.getLevelNamesMapping().get(value.upper(), logging.INFO)


def _resolve_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _make_formatter(resolved_json: bool | None) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if resolved_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )


def _build_handlers(
    formatter: logging.Formatter, log_file: str | None, stream: bool
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if stream:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        handlers.append(stream_handler)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    if not handlers:
        # Keeps records from falling through to logging.lastResort on stderr.
        handlers.append(logging.NullHandler())
    return handlers


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | None = None,
    json: bool | None = None,
    force: bool = False,
    stream: bool = True,
) -> None:
    """Configure stdlib logging and structlog with a shared formatter.

    ``stream=False`` leaves stderr alone, which the full-screen UI needs since
    it owns the terminal; records then go to ``log_file`` only, if one is set.
    Explicit arguments win over the ``RV_LOG_*`` environment variables.
    """
    resolved_level = _resolve_level(level or os.environ.get(ENV_LOG_LEVEL), debug)
    env_json = _resolve_bool(os.environ.get(ENV_LOG_JSON))
    resolved_json = env_json if json is None else json
    resolved_log_file = os.environ.get(ENV_LOG_FILE) if log_file is None else log_file

    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        _configure_structlog()
        return

    handlers = _build_handlers(
        _make_formatter(resolved_json), resolved_log_file, stream
    )
    if force:
        root_logger.handlers.clear()

    root_logger.setLevel(resolved_level)
    for handler in handlers:
        root_logger.addHandler(handler)
    _configure_structlog()
