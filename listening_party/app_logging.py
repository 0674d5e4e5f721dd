"""Logging configuration helpers."""

from __future__ import annotations

import logging

from . import config


def configure_logging(level: str | None = None) -> None:
    """Configure package logging with a single stream handler."""
    logger = logging.getLogger("listening_party")
    logger.setLevel((level or config.LOG_LEVEL).upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
