"""Logging setup shared by the relay client, proxy and CLI scripts."""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable, Optional

RELAY_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# HTTP libraries on both sides of the relay; their request logs sit beside ours.
HTTP_LOGGERS = ("httpx", "aiohttp.access", "aiohttp.client")


def configure_logging(
    level: int = logging.INFO,
    *,
    name: str = "lesson_relay",
    propagate: bool = False,
    extra_loggers: Optional[Iterable[str]] = None,
    http_level: Optional[int] = None,
) -> Logger:
    """Attach one stream handler to the relay logger and the HTTP library loggers.

    ``extra_loggers`` defaults to :data:`HTTP_LOGGERS`; pass ``()`` to bind
    only ``name``. HTTP loggers log at ``http_level`` (default: ``level``, but
    never below INFO, since httpx logs every request line at DEBUG).
    """

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(RELAY_FORMAT))

    def _bind(target: Logger, target_level: int) -> None:
        if not any(isinstance(existing, logging.StreamHandler) for existing in target.handlers):
            target.addHandler(handler)
        target.setLevel(target_level)
        target.propagate = propagate

    logger = logging.getLogger(name)
    _bind(logger, level)

    if http_level is None:
        http_level = max(level, logging.INFO)
    for logger_name in HTTP_LOGGERS if extra_loggers is None else extra_loggers:
        _bind(logging.getLogger(logger_name), http_level)

    return logger


__all__ = ["HTTP_LOGGERS", "configure_logging"]
