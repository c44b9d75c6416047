"""Authoritative in-process Python API for Identity Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from packages.tally_shared.config import TallySettings
from packages.tally_shared.envelope import Envelope, EnvelopeMeta
from services.ingestion.identity.domain import HealthStatus, UserIdentity


class IdentityService(ABC):
    """Public API for pseudonymous per-day user identity derivation."""

    @abstractmethod
    def compute_identity(
        self,
        *,
        meta: EnvelopeMeta,
        timestamp: datetime,
        app_id: str,
        session_id: str,
        user_agent: str,
        client_ip: str,
        timeout_seconds: float | None = None,
    ) -> Envelope[UserIdentity]:
        """Return the pseudonymous user id for one event."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return Identity Service and owned dependency readiness status."""


def build_identity_service(*, settings: TallySettings) -> IdentityService:
    """Build default Identity implementation from typed settings."""
    from services.ingestion.identity.implementation import DefaultIdentityService

    return DefaultIdentityService.from_settings(settings)
