"""Postgres/SQLAlchemy exception normalization helpers."""

from __future__ import annotations

from packages.tally_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
    internal_error,
)


def is_postgres_error(exc: Exception) -> bool:
    """Return whether an exception comes from SQLAlchemy or the psycopg driver."""
    module = type(exc).__module__
    return module.startswith(("sqlalchemy", "psycopg"))


def normalize_postgres_error(exc: Exception) -> ErrorDetail:
    """Map low-level DB exceptions onto the shared error taxonomy."""
    exc_type_name = type(exc).__name__
    message = str(exc)
    metadata = {"exception_type": exc_type_name, "resource": "substrate_postgres"}

    if "UniqueViolation" in exc_type_name or "duplicate key value" in message:
        return conflict_error(
            "resource already exists",
            code=codes.ALREADY_EXISTS,
            metadata=metadata,
        )

    if "QueryCanceled" in message or "statement timeout" in message:
        return dependency_error(
            "postgres statement timed out",
            code=codes.DEPENDENCY_TIMEOUT,
            retryable=True,
            metadata=metadata,
        )

    if "OperationalError" in exc_type_name or "timeout" in message.lower():
        return dependency_error(
            "postgres unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            retryable=True,
            metadata=metadata,
        )

    if "InterfaceError" in exc_type_name or "ProgrammingError" in exc_type_name:
        return dependency_error(
            "postgres request failed",
            code=codes.DEPENDENCY_FAILURE,
            retryable=False,
            metadata=metadata,
        )

    return internal_error(
        "unexpected postgres failure",
        code=codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
