"""Shared logging utilities for request pipeline observability.

Usage example:
    from okta_request_pipeline.observability.logging import get_logger

    logger = get_logger("okta_request_pipeline.retry")
    logger.info("Backing off %.3fs before retrying %s", delay_seconds, request_id)
"""

from __future__ import annotations

import logging
import time

ROOT_LOGGER_NAME = "okta_request_pipeline"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name under
            ``okta_request_pipeline``).
        level: Level applied the first time the logger is configured.

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
    return logger


def set_log_level(level: int) -> None:
    """Apply a level to every configured logger in the package namespace."""
    manager = logging.Logger.manager
    for name, candidate in list(manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
            candidate.setLevel(level)
