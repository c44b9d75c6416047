"""Pre-migration bootstrap for service-owned schemas."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import text

from packages.tally_shared.config import TallySettings
from resources.substrates.postgres.config import resolve_postgres_settings
from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.schema_session import validate_schema_name


def provision_schemas(
    *,
    settings: TallySettings,
    schemas: Sequence[str],
) -> tuple[str, ...]:
    """Create each schema if missing and return the provisioned names."""
    for schema in schemas:
        validate_schema_name(schema)

    engine = create_postgres_engine(resolve_postgres_settings(settings))
    try:
        with engine.begin() as connection:
            for schema in schemas:
                connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
    finally:
        engine.dispose()
    return tuple(schemas)
