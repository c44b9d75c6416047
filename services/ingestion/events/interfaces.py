"""Transport-neutral protocol interfaces used by Event Ingestion Service."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from services.ingestion.events.domain import ClientLocation, EventRow, UserAgentInfo


class AppRegistry(Protocol):
    """Protocol for looking up the app that owns one app key."""

    def find_app_id(self, *, app_key: str) -> str | None:
        """Return the app id for a well-formed key, or ``None`` when unknown."""


class UserAgentParser(Protocol):
    """Protocol for extracting OS and browser engine from a user agent."""

    def parse(self, user_agent: str) -> UserAgentInfo:
        """Return parsed fields; unknown parts are empty strings."""


class GeoIPClient(Protocol):
    """Protocol for coarse client geolocation."""

    def locate(self, client_ip: str) -> ClientLocation:
        """Return the location of ``client_ip``; unknown parts are empty."""


class IngestionClient(Protocol):
    """Protocol for forwarding normalized rows downstream."""

    def send_rows(
        self,
        rows: Sequence[EventRow],
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        """Deliver ``rows``; raise on any delivery failure."""
