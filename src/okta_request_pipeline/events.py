"""Retry chain notifications.

Usage example:
    from okta_request_pipeline.events import LoggingRetryListener

    executor.add_listener(LoggingRetryListener())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing_extensions import override

import requests

from .domain.request import Request
from .observability import get_logger
from .protocols import RetryListener


@dataclass(frozen=True)
class BackoffEvent:
    """A 429 response was received and a retry has been scheduled."""

    request: Request
    response: requests.Response
    request_id: str | None
    delay_seconds: float


@dataclass(frozen=True)
class ResumeEvent:
    """The backoff elapsed and the retried request is about to be sent."""

    request: Request
    request_id: str | None


class LoggingRetryListener(RetryListener):
    """Write backoff and resume notifications to the project logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("okta_request_pipeline.retry")

    @override
    def on_backoff(self, event: BackoffEvent) -> None:
        self.logger.info(
            "Rate limited %s %s (request id %s); retrying in %.3fs",
            event.request.method,
            event.request.url,
            event.request_id or "-",
            event.delay_seconds,
        )

    @override
    def on_resume(self, event: ResumeEvent) -> None:
        self.logger.info(
            "Resuming %s %s (retry %s for request id %s)",
            event.request.method,
            event.request.url,
            event.request.retry_count,
            event.request_id or "-",
        )
