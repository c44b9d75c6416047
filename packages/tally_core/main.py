"""Process entrypoint for the Tally ingestion API."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI

from packages.tally_core import health_api
from packages.tally_core.migrations import run_startup_migrations
from packages.tally_shared.config import TallySettings, load_settings
from packages.tally_shared.http import create_app, run_app
from packages.tally_shared.logging import configure_logging, get_logger
from services.ingestion.events import api as events_api
from services.ingestion.events.service import build_event_ingestion_service
from services.ingestion.identity.service import build_identity_service

_LOGGER = get_logger(__name__)


def build_app(settings: TallySettings) -> FastAPI:
    """Build services from settings and mount their routes on one app."""
    identity = build_identity_service(settings=settings)
    events = build_event_ingestion_service(settings=settings, identity=identity)

    app = create_app(title="Tally Ingestion API")
    router = APIRouter()
    health_api.register_routes(router=router, identity=identity)
    events_api.register_routes(
        router=router, service=events, http_settings=settings.http
    )
    app.include_router(router)
    return app


def main() -> None:
    """Load settings, migrate, and serve the ingestion API until interrupted."""
    settings = load_settings()
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )

    if settings.core.run_migrations_on_startup:
        result = run_startup_migrations(settings=settings)
        _LOGGER.info(
            "Startup migrations completed: schemas=%s configs=%s",
            ",".join(result.provisioned_schemas),
            len(result.executed_alembic_configs),
        )

    app = build_app(settings)
    _LOGGER.info(
        "Serving ingestion API: host=%s port=%s",
        settings.http.host,
        settings.http.port,
    )
    run_app(
        app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
