"""Schema-scoped transactional sessions for service-owned tables."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres.session import transactional_session

_SET_LOCAL_TIMEOUT = text(
    "SELECT set_config('statement_timeout', :timeout_value, true)"
)


class ServiceSchemaSessionProvider:
    """Provide transactional sessions pinned to one service-owned schema.

    ``statement_timeout_seconds`` bounds every statement of the transaction;
    a timed-out statement aborts and the whole transaction rolls back.
    """

    def __init__(self, *, session_factory: sessionmaker[Session], schema: str) -> None:
        validate_schema_name(schema)
        self._session_factory = session_factory
        self._schema = schema

    @property
    def schema(self) -> str:
        """Return the owned schema name."""
        return self._schema

    @contextmanager
    def session(
        self, *, statement_timeout_seconds: float | None = None
    ) -> Iterator[Session]:
        """Yield a transaction-scoped session with a local search_path."""
        with transactional_session(self._session_factory) as db:
            db.execute(text(f"SET LOCAL search_path TO {self._schema}, public"))
            if statement_timeout_seconds is not None:
                timeout_ms = max(1, int(statement_timeout_seconds * 1000))
                db.execute(
                    _SET_LOCAL_TIMEOUT,
                    {"timeout_value": f"{timeout_ms}ms"},
                )
            yield db


def validate_schema_name(schema: str) -> None:
    """Reject schema names that could break the search_path statement."""
    if not schema:
        raise ValueError("postgres schema is required")
    if not schema.replace("_", "").isalnum():
        raise ValueError("postgres schema must be alphanumeric/underscore")
