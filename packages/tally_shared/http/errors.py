"""Typed errors for shared HTTP client and server helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HttpError(Exception):
    """Base error type for shared HTTP helper failures."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class HttpClientError(HttpError):
    """Outbound HTTP call failure."""

    method: str
    url: str
    retryable: bool = False


@dataclass(frozen=True)
class HttpRequestError(HttpClientError):
    """Transport-level failure (connect, read, timeout)."""

    cause: Exception | None = None


@dataclass(frozen=True)
class HttpStatusError(HttpClientError):
    """Non-success status code returned by the remote side."""

    status_code: int = 0
    response_body: str = ""


@dataclass(frozen=True)
class HttpServerError(HttpError):
    """Inbound request parsing or validation failure."""


@dataclass(frozen=True)
class MissingHeaderError(HttpServerError):
    """Required inbound header is missing or blank."""

    header_name: str


@dataclass(frozen=True)
class InvalidJsonBodyError(HttpServerError):
    """Inbound body is not valid JSON."""
