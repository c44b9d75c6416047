"""FastAPI route for aggregate process readiness."""

from __future__ import annotations

from http import HTTPStatus

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from packages.tally_shared.envelope import EnvelopeKind, new_meta
from services.ingestion.identity.service import IdentityService


def register_routes(*, router: APIRouter, identity: IdentityService) -> None:
    """Register ``GET /health`` backed by Identity Service readiness."""

    @router.get("/health")
    async def health() -> JSONResponse:
        result = await run_in_threadpool(
            identity.health,
            meta=new_meta(
                kind=EnvelopeKind.COMMAND, source="core_health", principal="system"
            ),
        )
        if not result.ok or result.payload is None:
            return JSONResponse(
                status_code=HTTPStatus.SERVICE_UNAVAILABLE,
                content={
                    "ready": False,
                    "detail": "; ".join(error.message for error in result.errors),
                },
            )

        status = result.payload.value
        ready = status.service_ready and status.substrate_ready
        return JSONResponse(
            status_code=HTTPStatus.OK if ready else HTTPStatus.SERVICE_UNAVAILABLE,
            content={
                "ready": ready,
                "service_ready": status.service_ready,
                "substrate_ready": status.substrate_ready,
                "detail": status.detail,
            },
        )
