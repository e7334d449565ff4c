"""Typed parsing and validation for client config files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ClientConfigFile:
    """Validated client config values loaded from a TOML file."""

    org_url: str | None = None
    request_timeout_ms: int | None = None
    max_retries: int | None = None
    connection_timeout_seconds: float | None = None
    cache_enabled: bool | None = None
    cache_default_ttl_seconds: float | None = None
    cache_key_limit: int | None = None
    max_token_refreshes: int | None = None


class _ClientSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    org_url: str | None = None
    request_timeout_ms: int | None = None
    max_retries: int | None = None
    connection_timeout_seconds: float | None = None
    cache_enabled: bool | None = None
    cache_default_ttl_seconds: float | None = None
    cache_key_limit: int | None = None
    max_token_refreshes: int | None = None

    @field_validator("org_url")
    @classmethod
    def _validate_org_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        if not text.startswith(("http://", "https://")):
            raise ValueError("org_url must be an absolute http(s) URL")
        return text

    @field_validator("request_timeout_ms", "max_retries", "max_token_refreshes")
    @classmethod
    def _validate_non_negative_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("cache_key_limit")
    @classmethod
    def _validate_positive_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("connection_timeout_seconds", "cache_default_ttl_seconds")
    @classmethod
    def _validate_positive_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError("must be > 0")
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    client: _ClientSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError(f"unsupported schema_version (expected {_SCHEMA_VERSION})")
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_client_config_file(path: Path) -> ClientConfigFile:
    """Load and validate a client TOML config file.

    Raises:
        ConfigFileNotFoundError: If the path does not exist.
        ConfigFileParseError: If the file is not valid TOML.
        ConfigFileValidationError: If the document does not match the schema.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    raw_payload = path.read_text(encoding="utf-8")
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    section = model.client
    return ClientConfigFile(
        org_url=section.org_url,
        request_timeout_ms=section.request_timeout_ms,
        max_retries=section.max_retries,
        connection_timeout_seconds=section.connection_timeout_seconds,
        cache_enabled=section.cache_enabled,
        cache_default_ttl_seconds=section.cache_default_ttl_seconds,
        cache_key_limit=section.cache_key_limit,
        max_token_refreshes=section.max_token_refreshes,
    )
