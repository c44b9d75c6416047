"""Settings-backed app registry."""

from __future__ import annotations

from collections.abc import Mapping

from services.ingestion.events.interfaces import AppRegistry


class StaticAppRegistry(AppRegistry):
    """App registry over a fixed ``app_key -> app_id`` mapping."""

    def __init__(self, app_keys: Mapping[str, str]) -> None:
        self._app_keys = {key.upper(): app_id for key, app_id in app_keys.items()}

    def find_app_id(self, *, app_key: str) -> str | None:
        return self._app_keys.get(app_key.upper()) or None
