"""Event Ingestion Service native package exports."""

from services.ingestion.events.component import SERVICE_COMPONENT_ID
from services.ingestion.events.config import EventIngestionSettings
from services.ingestion.events.domain import EventBody, EventRow, IngestResult
from services.ingestion.events.implementation import DefaultEventIngestionService
from services.ingestion.events.service import (
    EventIngestionService,
    build_event_ingestion_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "DefaultEventIngestionService",
    "EventBody",
    "EventIngestionService",
    "EventIngestionSettings",
    "EventRow",
    "IngestResult",
    "build_event_ingestion_service",
]
