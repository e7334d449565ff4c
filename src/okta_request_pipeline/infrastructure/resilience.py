"""Rate-limit retry decisions for infrastructure.

Usage example:
    from okta_request_pipeline.infrastructure.resilience import RateLimitRetryPolicy

    policy = RateLimitRetryPolicy(max_retries=2, request_timeout_ms=0)
    if policy.should_retry(response, request):
        delay = policy.compute_delay(response)
        retry = policy.build_retry_request(request, response)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing_extensions import override

import requests

from ..domain.request import RETRY_COUNT_HEADER, RETRY_FOR_HEADER, Request
from ..protocols import RetryPolicy as RetryPolicyProtocol

REQUEST_ID_HEADER = "x-okta-request-id"
RATE_LIMIT_RESET_HEADER = "x-rate-limit-reset"
DATE_HEADER = "date"

# Reset and Date are both whole seconds; pad so the retry never lands early.
CLOCK_PADDING_SECONDS = 1.0


def _utc_now() -> datetime:
    return datetime.now(UTC)


def get_request_id(response: requests.Response) -> str | None:
    return response.headers.get(REQUEST_ID_HEADER)


def get_rate_limit_reset(response: requests.Response) -> str | None:
    return response.headers.get(RATE_LIMIT_RESET_HEADER)


def get_response_date(response: requests.Response) -> str | None:
    return response.headers.get(DATE_HEADER)


def _parse_epoch_seconds(value: str | None) -> int | None:
    if value is None:
        return None
    text = value.strip()
    if not text.isdigit():
        return None
    return int(text)


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class RateLimitRetryPolicy(RetryPolicyProtocol):
    """Decide whether a 429 response is retried and how long to wait.

    The delay is derived from the server's own clock: the gap between the
    ``x-rate-limit-reset`` epoch and the response ``Date`` header, plus one
    second of padding. The local clock is only used for the request timeout.

    ``request_timeout_ms`` of 0 disables the timeout. ``max_retries`` of 0
    disables retries.
    """

    max_retries: int = 2
    request_timeout_ms: int = 0
    clock: Callable[[], datetime] = field(default=_utc_now, repr=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.request_timeout_ms < 0:
            raise ValueError("request_timeout_ms must be >= 0")

    @override
    def get_request_id(self, response: requests.Response) -> str | None:
        return get_request_id(response)

    def can_retry(self, response: requests.Response) -> bool:
        """Return True when the reset header holds exactly one usable value.

        Duplicate headers arrive joined by commas and are refused rather than
        guessed at. A reset or Date value that cannot be parsed is refused too.
        """
        reset = get_rate_limit_reset(response)
        if not reset or "," in reset:
            return False
        if _parse_epoch_seconds(reset) is None:
            return False
        return _parse_http_date(get_response_date(response)) is not None

    def has_timed_out(self, request: Request) -> bool:
        if request.start_time is None or self.request_timeout_ms == 0:
            return False
        elapsed = self.clock() - request.start_time
        return elapsed.total_seconds() * 1000 > self.request_timeout_ms

    def max_retries_reached(self, request: Request) -> bool:
        """Return True once the chain has used its retries.

        A retry count that is not an integer cannot be continued and counts as
        exhausted.
        """
        retry_count = request.retry_count
        if retry_count is None:
            unparseable = bool(request.headers.get(RETRY_COUNT_HEADER, "").strip())
            return unparseable or self.max_retries == 0
        return retry_count >= self.max_retries

    @override
    def should_retry(self, response: requests.Response, request: Request) -> bool:
        return (
            response.status_code == 429
            and self.can_retry(response)
            and not self.has_timed_out(request)
            and not self.max_retries_reached(request)
        )

    @override
    def compute_delay(self, response: requests.Response) -> float:
        """Return seconds to wait, measured against the response's server clock.

        Raises:
            ValueError: If the reset or Date header cannot be parsed. Call
                ``can_retry`` first.
        """
        reset = _parse_epoch_seconds(get_rate_limit_reset(response))
        server_now = _parse_http_date(get_response_date(response))
        if reset is None or server_now is None:
            raise ValueError("Response lacks parseable x-rate-limit-reset and Date headers")
        return reset - server_now.timestamp() + CLOCK_PADDING_SECONDS

    @override
    def build_retry_request(self, request: Request, response: requests.Response) -> Request:
        retry = request.clone()
        if request.start_time is None:
            retry.start_time = self.clock()
        if not retry.headers.get(RETRY_FOR_HEADER):
            request_id = get_request_id(response)
            if request_id:
                retry.headers[RETRY_FOR_HEADER] = request_id
        retry_count = request.retry_count
        retry.headers[RETRY_COUNT_HEADER] = str(1 if retry_count is None else retry_count + 1)
        return retry
