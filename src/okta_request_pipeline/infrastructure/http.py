"""HTTP transport and retrying executor implementations.

Usage example:
    import requests

    from okta_request_pipeline.infrastructure.http import RequestsTransport, RetryingRequestExecutor
    from okta_request_pipeline.infrastructure.resilience import RateLimitRetryPolicy

    executor = RetryingRequestExecutor(
        transport=RequestsTransport(session=requests.Session()),
        policy=RateLimitRetryPolicy(max_retries=2),
    )
    response = executor.fetch(request)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing_extensions import override

import requests
from pydantic import TypeAdapter, ValidationError

from ..domain.request import Request
from ..events import BackoffEvent, ResumeEvent
from ..exceptions import HttpError, OktaApiError
from ..protocols import RetryListener, RetryPolicy, Transport
from .resilience import RateLimitRetryPolicy

_ERROR_DOCUMENT = TypeAdapter(dict[str, object])


class RequestsTransport(Transport):
    """Requests-backed transport performing exactly one exchange per call."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    @override
    def fetch(self, request: Request) -> requests.Response:
        return self.session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            data=request.body,
            timeout=self.timeout_seconds,
        )


class RetryingRequestExecutor(Transport):
    """Transport decorator that transparently retries rate-limited exchanges.

    Each attempt is sent through the wrapped transport. A 429 the policy accepts
    is followed by a backoff sleep and a retry built from a fresh copy of the
    request; anything else, including a 429 the policy refuses, is returned
    unchanged. Retries are strictly sequential.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        listeners: list[RetryListener] | None = None,
    ) -> None:
        self.transport = transport
        self.policy = policy or RateLimitRetryPolicy()
        self.sleep = sleep
        self._listeners: list[RetryListener] = list(listeners or [])

    def add_listener(self, listener: RetryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RetryListener) -> None:
        self._listeners.remove(listener)

    @override
    def fetch(self, request: Request) -> requests.Response:
        """Send the request, retrying while the policy asks for it.

        Raises:
            requests.RequestException: Transport failures, unchanged.
        """
        current = request
        while True:
            response = self.transport.fetch(current)
            if not self.policy.should_retry(response, current):
                return response

            delay = max(0.0, self.policy.compute_delay(response))
            retry = self.policy.build_retry_request(current, response)
            request_id = self.policy.get_request_id(response)

            backoff = BackoffEvent(
                request=current,
                response=response,
                request_id=request_id,
                delay_seconds=delay,
            )
            for listener in list(self._listeners):
                listener.on_backoff(backoff)

            self.sleep(delay)

            resume = ResumeEvent(request=retry, request_id=request_id)
            for listener in list(self._listeners):
                listener.on_resume(resume)
            current = retry


def error_filter(response: requests.Response) -> requests.Response:
    """Return a 2xx response unchanged, otherwise raise a classified error.

    Raises:
        OktaApiError: For a non-2xx response with a JSON object body.
        HttpError: For a non-2xx response with any other body.
    """
    if 200 <= response.status_code < 300:
        return response

    url = response.url or ""
    body = response.text
    try:
        document = _ERROR_DOCUMENT.validate_json(body)
    except ValidationError:
        raise HttpError(url, response.status_code, body, response.headers) from None
    raise OktaApiError(url, response.status_code, document, response.headers)
