"""Shared Postgres substrate primitives for Tally services."""

from resources.substrates.postgres.bootstrap import provision_schemas
from resources.substrates.postgres.config import (
    RESOURCE_COMPONENT_ID,
    PostgresSettings,
    resolve_postgres_settings,
)
from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.errors import (
    is_postgres_error,
    normalize_postgres_error,
)
from resources.substrates.postgres.schema_session import (
    ServiceSchemaSessionProvider,
    validate_schema_name,
)
from resources.substrates.postgres.session import (
    create_session_factory,
    transactional_session,
)

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "PostgresSettings",
    "ServiceSchemaSessionProvider",
    "create_postgres_engine",
    "create_session_factory",
    "is_postgres_error",
    "normalize_postgres_error",
    "provision_schemas",
    "resolve_postgres_settings",
    "transactional_session",
    "validate_schema_name",
]
