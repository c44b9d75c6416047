"""Authoritative in-process Python API for Event Ingestion Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from packages.tally_shared.config import TallySettings
from packages.tally_shared.envelope import Envelope, EnvelopeMeta
from services.ingestion.events.domain import IngestResult
from services.ingestion.identity.service import IdentityService


class EventIngestionService(ABC):
    """Public API for validating, enriching and forwarding analytics events."""

    @abstractmethod
    def ingest_event(
        self,
        *,
        meta: EnvelopeMeta,
        app_key: str,
        user_agent: str,
        client_ip: str,
        event: Mapping[str, Any],
        timeout_seconds: float | None = None,
    ) -> Envelope[IngestResult]:
        """Ingest one event; any validation problem fails the call."""

    @abstractmethod
    def ingest_events(
        self,
        *,
        meta: EnvelopeMeta,
        app_key: str,
        user_agent: str,
        client_ip: str,
        events: Sequence[Any],
        timeout_seconds: float | None = None,
    ) -> Envelope[IngestResult]:
        """Ingest a batch; invalid events are dropped and counted as rejected."""


def build_event_ingestion_service(
    *,
    settings: TallySettings,
    identity: IdentityService,
) -> EventIngestionService:
    """Build default Event Ingestion implementation from typed settings."""
    from services.ingestion.events.implementation import (
        DefaultEventIngestionService,
    )

    return DefaultEventIngestionService.from_settings(settings, identity=identity)
