"""Structlog configuration with a stdlib bridge.

configure_logging() is one-shot unless forced; get_logger() returns a logger
bound to a component name. LOG_LEVEL filters both structlog and stdlib output.
"""

import logging
import sys
from typing import Any, List

import structlog

from settings import Settings

_CONFIGURED = False


def configure_logging(settings: Settings, force: bool = False) -> None:
    global _CONFIGURED
    if _CONFIGURED and not force:
        return
    _CONFIGURED = True

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    renderer = _select_renderer(settings)
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    # ConsoleRenderer formats exc_info itself
    if isinstance(renderer, structlog.processors.JSONRenderer):
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn and pymongo log through stdlib; render them the same way
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(component: str) -> Any:
    return structlog.get_logger().bind(component=component)


def _select_renderer(settings: Settings) -> Any:
    log_format = (settings.log_format or "").lower()
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)

    if settings.app_env.lower() in ("qa", "staging", "prod", "production"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)
