"""HTTP client forwarding event rows to the analytics store."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from packages.tally_shared.http import HttpClient
from packages.tally_shared.logging import get_logger
from services.ingestion.events.domain import EventRow
from services.ingestion.events.interfaces import IngestionClient

_LOGGER = get_logger(__name__)


class HttpIngestionClient(IngestionClient):
    """Post rows as newline-delimited JSON with a bearer token."""

    def __init__(self, *, url: str, token: str, http: HttpClient) -> None:
        if not url:
            raise ValueError("ingestion url is required")
        self._url = url
        self._token = token
        self._http = http

    def send_rows(
        self,
        rows: Sequence[EventRow],
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        if not rows:
            return
        payload = "\n".join(row.model_dump_json() for row in rows)
        headers = {"Content-Type": "application/x-ndjson"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        kwargs: dict[str, Any] = {}
        if timeout_seconds is not None:
            kwargs["timeout"] = timeout_seconds
        self._http.post(
            self._url,
            content=payload.encode("utf-8"),
            headers=headers,
            **kwargs,
        )
        _LOGGER.debug("Forwarded event rows: count=%s", len(rows))

    def close(self) -> None:
        self._http.close()
