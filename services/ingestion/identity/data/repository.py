"""Authoritative Postgres repository for per-app daily salts."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert

from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.ingestion.identity.domain import SALT_LENGTH_BYTES, AppSalt
from services.ingestion.identity.interfaces import SaltRepository

from .schema import app_salts


def new_salt() -> bytes:
    """Return fresh cryptographically random salt bytes."""
    return secrets.token_bytes(SALT_LENGTH_BYTES)


class PostgresSaltRepository(SaltRepository):
    """SQL repository over the Identity-owned ``app_salts`` table."""

    def __init__(
        self,
        sessions: ServiceSchemaSessionProvider,
        *,
        salt_factory: Callable[[], bytes] = new_salt,
    ) -> None:
        self._sessions = sessions
        self._salt_factory = salt_factory

    def get_or_create_salt(
        self,
        *,
        app_id: str,
        day: str,
        timeout_seconds: float | None = None,
    ) -> AppSalt:
        """Insert a candidate salt unless one exists, then read the stored one.

        Concurrent first callers all attempt the insert; exactly one wins and
        every caller reads back the winner's bytes. An existing row is never
        updated.
        """
        candidate = self._salt_factory()
        with self._sessions.session(
            statement_timeout_seconds=timeout_seconds
        ) as session:
            stmt = insert(app_salts).values(app_id=app_id, date=day, salt=candidate)
            stmt = stmt.on_conflict_do_nothing(constraint="pk_app_salts")
            session.execute(stmt)

            row = (
                session.execute(
                    select(
                        app_salts.c.app_id, app_salts.c.date, app_salts.c.salt
                    ).where(
                        app_salts.c.app_id == app_id,
                        app_salts.c.date == day,
                    )
                )
                .mappings()
                .one()
            )
            return _to_app_salt(row)

    def ping(self) -> None:
        """Run one trivial query inside an Identity schema session."""
        with self._sessions.session() as session:
            session.execute(text("SELECT 1"))


def _to_app_salt(row: Any) -> AppSalt:
    """Map one SQL row to a strict domain salt record."""
    salt = row["salt"]
    if isinstance(salt, memoryview):
        salt = salt.tobytes()
    if not isinstance(salt, bytes) or len(salt) != SALT_LENGTH_BYTES:
        raise ValueError(
            f"stored salt for {row['app_id']}/{row['date']} is not "
            f"{SALT_LENGTH_BYTES} bytes"
        )
    return AppSalt(app_id=str(row["app_id"]), day=str(row["date"]), salt=salt)
