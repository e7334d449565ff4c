"""Custom exceptions for the request pipeline.

These exceptions classify failed exchanges and configuration problems so callers
can handle each failure mode explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping


class ClientError(Exception):
    """Base exception for all client errors."""

    pass


class OktaApiError(ClientError):
    """Raised for a non-2xx response whose body is a JSON error document."""

    def __init__(
        self,
        url: str,
        status: int,
        body: Mapping[str, object],
        headers: Mapping[str, str],
    ) -> None:
        self.url = url
        self.status = status
        self.body = dict(body)
        self.headers = dict(headers)
        self.error_code = _text(body.get("errorCode"))
        self.error_summary = _text(body.get("errorSummary"))
        self.error_link = _text(body.get("errorLink"))
        self.error_id = _text(body.get("errorId"))
        self.error_causes = _causes(body.get("errorCauses"))
        message = f"Okta HTTP {status} {self.error_code or '-'} {self.error_summary or ''}".rstrip()
        if self.error_causes:
            message = f"{message}. {' '.join(self.error_causes)}"
        super().__init__(message)


class HttpError(ClientError):
    """Raised for a non-2xx response whose body is not a JSON error document."""

    def __init__(self, url: str, status: int, body: str, headers: Mapping[str, str]) -> None:
        self.url = url
        self.status = status
        self.body = body
        self.headers = dict(headers)
        super().__init__(f"HTTP {status} {body}".rstrip())


class EmptyCacheResultError(ClientError):
    """Raised when cache middleware neither served a response nor ran the exchange."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Cache middleware produced no response for {url}")


class ConfigFileNotFoundError(ClientError):
    """Raised when a client config file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(ClientError):
    """Raised when a client config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(f"Config file {path} is not valid TOML: {detail}")


class ConfigFileValidationError(ClientError):
    """Raised when a client config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        super().__init__(f"Config file {path} is invalid: {detail}")


class MissingOrgUrlError(ClientError):
    """Raised when a relative URL is requested without a configured org URL."""

    def __init__(self, url: str) -> None:
        super().__init__(
            f"Cannot resolve relative URL {url!r}: set OKTA_CLIENT_ORGURL or pass an absolute URL."
        )


def _text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _causes(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    summaries: list[str] = []
    for cause in value:
        if isinstance(cause, Mapping) and cause.get("errorSummary"):
            summaries.append(str(cause["errorSummary"]))
    return tuple(summaries)
