"""Identity-owned Postgres runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.tally_shared.config import TallySettings
from resources.substrates.postgres import (
    ServiceSchemaSessionProvider,
    create_postgres_engine,
    create_session_factory,
)
from resources.substrates.postgres.config import resolve_postgres_settings
from services.ingestion.identity.config import resolve_identity_settings


@dataclass(frozen=True)
class IdentityPostgresRuntime:
    """Concrete Identity-owned handle for schema-scoped Postgres access."""

    engine: Engine
    session_factory: sessionmaker[Session]
    schema_sessions: ServiceSchemaSessionProvider

    @classmethod
    def from_settings(cls, settings: TallySettings) -> "IdentityPostgresRuntime":
        """Build Identity DB runtime from typed application settings."""
        postgres_config = resolve_postgres_settings(settings)
        engine = create_postgres_engine(postgres_config)
        session_factory = create_session_factory(engine)
        return cls(
            engine=engine,
            session_factory=session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=session_factory,
                schema=identity_postgres_schema(settings),
            ),
        )


def identity_postgres_schema(settings: TallySettings) -> str:
    """Resolve the schema holding Identity-owned tables."""
    return resolve_identity_settings(settings).schema_name
