"""Component identity for the Identity Service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_identity"
