"""Request value objects threaded through the pipeline.

Usage example:
    from okta_request_pipeline.domain.request import Request

    request = Request("https://example.okta.com/api/v1/users", headers={"Accept": "application/json"})
    retry = request.with_header("X-Okta-Retry-Count", "1")
    assert "X-Okta-Retry-Count" not in request.headers
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from requests.structures import CaseInsensitiveDict

RETRY_COUNT_HEADER = "X-Okta-Retry-Count"
RETRY_FOR_HEADER = "X-Okta-Retry-For"

Body = str | bytes | None


@dataclass
class Request:
    """One attempt of a logical HTTP exchange.

    Attempts are never mutated once handed to a later stage; retries work on a
    ``clone()``. ``start_time`` is stamped on the first retried attempt and then
    carried unchanged through every later copy of the chain.
    """

    url: str
    method: str = "GET"
    headers: CaseInsensitiveDict[str] = field(default_factory=CaseInsensitiveDict)
    body: Body = None
    start_time: datetime | None = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers or {})

    @classmethod
    def build(
        cls,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Body = None,
    ) -> Request:
        """Create a request from plain values, copying the header mapping."""
        return cls(url=url, method=method, headers=CaseInsensitiveDict(headers or {}), body=body)

    def clone(self) -> Request:
        """Return a deep copy that shares no mutable state with this request."""
        return Request(
            url=self.url,
            method=self.method,
            headers=CaseInsensitiveDict(self.headers.copy()),
            body=copy.copy(self.body),
            start_time=self.start_time,
        )

    def with_header(self, name: str, value: str) -> Request:
        clone = self.clone()
        clone.headers[name] = value
        return clone

    @property
    def retry_count(self) -> int | None:
        """Counter of the retry chain, or None when absent or not an integer."""
        value = (self.headers.get(RETRY_COUNT_HEADER) or "").strip()
        if not value.isdigit():
            return None
        return int(value)

    @property
    def retry_for(self) -> str | None:
        return self.headers.get(RETRY_FOR_HEADER) or None


@dataclass(frozen=True)
class RequestContext:
    """Caller-supplied hints for the cache layer."""

    is_collection: bool = False
    resources: tuple[str, ...] = ()
