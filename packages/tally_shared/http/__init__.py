"""Public shared HTTP API for Tally packages."""

from .client import HttpClient
from .errors import (
    HttpClientError,
    HttpError,
    HttpRequestError,
    HttpServerError,
    HttpStatusError,
    InvalidJsonBodyError,
    MissingHeaderError,
)
from .server import create_app, get_header, read_json_body, run_app

__all__ = [
    "HttpClient",
    "HttpClientError",
    "HttpError",
    "HttpRequestError",
    "HttpServerError",
    "HttpStatusError",
    "InvalidJsonBodyError",
    "MissingHeaderError",
    "create_app",
    "get_header",
    "read_json_body",
    "run_app",
]
