"""Component identity for the Event Ingestion Service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_events"
