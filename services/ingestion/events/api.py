"""FastAPI routes for event ingestion."""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from packages.tally_shared.config import HttpSettings
from packages.tally_shared.envelope import (
    Envelope,
    EnvelopeKind,
    EnvelopeMeta,
    new_meta,
)
from packages.tally_shared.errors import ErrorCategory, codes
from packages.tally_shared.http import InvalidJsonBodyError, get_header, read_json_body
from services.ingestion.events.service import EventIngestionService

_NO_STORE = {"Cache-Control": "no-store"}
_SOURCE = "events_http_api"


def register_routes(
    *,
    router: APIRouter,
    service: EventIngestionService,
    http_settings: HttpSettings,
) -> None:
    """Register single and batch ingestion routes on ``router``."""

    @router.post("/api/v0/event")
    async def ingest_event(request: Request) -> JSONResponse:
        body, error = await _read_body(request, expected=dict)
        if error is not None:
            return error
        result = await run_in_threadpool(
            service.ingest_event,
            meta=_meta(),
            app_key=_header(request, "App-Key"),
            user_agent=_header(request, "User-Agent"),
            client_ip=resolve_client_ip(
                request, trusted_headers=http_settings.trusted_ip_headers
            ),
            event=body,
            timeout_seconds=http_settings.request_timeout_seconds,
        )
        return _to_response(result)

    @router.post("/api/v0/events")
    async def ingest_events(request: Request) -> JSONResponse:
        body, error = await _read_body(request, expected=list)
        if error is not None:
            return error
        result = await run_in_threadpool(
            service.ingest_events,
            meta=_meta(),
            app_key=_header(request, "App-Key"),
            user_agent=_header(request, "User-Agent"),
            client_ip=resolve_client_ip(
                request, trusted_headers=http_settings.trusted_ip_headers
            ),
            events=body,
            timeout_seconds=http_settings.request_timeout_seconds,
        )
        return _to_response(result)


def resolve_client_ip(request: Request, *, trusted_headers: Sequence[str]) -> str:
    """Return the first valid address from trusted proxy headers, else the peer.

    Comma-separated headers such as ``X-Forwarded-For`` contribute their first
    hop, which is the original client.
    """
    for name in trusted_headers:
        raw = request.headers.get(name, "")
        candidate = raw.split(",", 1)[0].strip()
        if candidate and _is_ip(candidate):
            return candidate
    return request.client.host if request.client is not None else ""


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _header(request: Request, name: str) -> str:
    return get_header(request, name, required=False) or ""


def _meta() -> EnvelopeMeta:
    return new_meta(kind=EnvelopeKind.EVENT, source=_SOURCE, principal="client")


async def _read_body(
    request: Request, *, expected: type
) -> tuple[Any, JSONResponse | None]:
    """Decode the JSON body and check its top-level shape."""
    try:
        body = await read_json_body(request)
    except InvalidJsonBodyError as exc:
        return None, _client_error(str(exc))
    if not isinstance(body, expected):
        shape = "object" if expected is dict else "array"
        return None, _client_error(f"Body must be a JSON {shape}")
    return body, None


def _client_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "ok": False,
            "errors": [
                {
                    "code": codes.INVALID_ARGUMENT,
                    "category": ErrorCategory.VALIDATION.value,
                    "message": message,
                }
            ],
        },
        headers=_NO_STORE,
    )


def _to_response(result: Envelope[Any]) -> JSONResponse:
    """Render an ingestion envelope as an HTTP response."""
    if result.ok:
        return JSONResponse(status_code=HTTPStatus.OK, content={}, headers=_NO_STORE)

    status = _error_status(result.errors[0].category) if result.errors else 500
    return JSONResponse(
        status_code=status,
        content={
            "ok": False,
            "errors": [
                {
                    "code": error.code,
                    "category": error.category.value,
                    "message": error.message,
                }
                for error in result.errors
            ],
        },
        headers=_NO_STORE,
    )


def _error_status(category: ErrorCategory) -> int:
    """Map structured envelope error category to HTTP status code."""
    if category == ErrorCategory.VALIDATION:
        return HTTPStatus.BAD_REQUEST
    if category == ErrorCategory.NOT_FOUND:
        return HTTPStatus.NOT_FOUND
    if category == ErrorCategory.CONFLICT:
        return HTTPStatus.CONFLICT
    if category == ErrorCategory.DEPENDENCY:
        return HTTPStatus.SERVICE_UNAVAILABLE
    if category == ErrorCategory.INTERNAL:
        return HTTPStatus.INTERNAL_SERVER_ERROR
    return HTTPStatus.BAD_REQUEST
