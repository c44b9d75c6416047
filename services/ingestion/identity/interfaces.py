"""Transport-neutral protocol interfaces used by Identity Service."""

from __future__ import annotations

from typing import Protocol

from services.ingestion.identity.domain import AppSalt


class SaltRepository(Protocol):
    """Protocol for durable per-app daily salt persistence."""

    def get_or_create_salt(
        self,
        *,
        app_id: str,
        day: str,
        timeout_seconds: float | None = None,
    ) -> AppSalt:
        """Return the stored salt for ``(app_id, day)``, creating it when absent."""

    def ping(self) -> None:
        """Raise when the backing store cannot serve a trivial query."""
