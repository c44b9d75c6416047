"""FastAPI and uvicorn helpers for the inbound HTTP surface."""

from __future__ import annotations

import json
from typing import Any

import uvicorn
from fastapi import FastAPI, Request

from .errors import InvalidJsonBodyError, MissingHeaderError


def create_app(*, title: str = "tally", version: str = "0.0.0") -> FastAPI:
    """Create a FastAPI app with project defaults."""
    return FastAPI(title=title, version=version, docs_url=None, redoc_url=None)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Serve one FastAPI app through uvicorn until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level=log_level, access_log=False)


def get_header(
    request: Request,
    name: str,
    *,
    required: bool = True,
    strip: bool = True,
) -> str | None:
    """Fetch one header value and optionally enforce presence."""
    value = request.headers.get(name)
    if strip and value is not None:
        value = value.strip()
    if required and not value:
        raise MissingHeaderError(
            message=f"Missing required header: {name}",
            header_name=name,
        )
    return value


async def read_json_body(request: Request) -> Any:
    """Read and decode one request body as JSON."""
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBodyError(message="Body is not valid JSON") from exc
