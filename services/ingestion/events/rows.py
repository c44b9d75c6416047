"""Event row construction for the downstream analytics store."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from services.ingestion.events.domain import (
    ClientLocation,
    EventBody,
    EventRow,
    PropValue,
)

DEBUG_APP_SUFFIX = "_DEBUG"


def split_props(
    props: Mapping[str, PropValue],
) -> tuple[dict[str, str], dict[str, int | float]]:
    """Split props into string-valued and numeric-valued maps.

    Booleans are stored as the strings ``"true"`` and ``"false"``.
    """
    string_props: dict[str, str] = {}
    numeric_props: dict[str, int | float] = {}
    for key, value in props.items():
        if isinstance(value, bool):
            string_props[key] = "true" if value else "false"
        elif isinstance(value, (int, float)):
            numeric_props[key] = value
        else:
            string_props[key] = value
    return string_props, numeric_props


def build_event_row(
    *,
    body: EventBody,
    app_id: str,
    user_id: str,
    location: ClientLocation,
    locale: str,
    ttl: timedelta,
) -> EventRow:
    """Build one normalized row; debug events go to the ``_DEBUG`` app id."""
    system = body.system_props
    string_props, numeric_props = split_props(body.props)
    return EventRow(
        app_id=f"{app_id}{DEBUG_APP_SUFFIX}" if system.is_debug else app_id,
        event_name=body.event_name,
        timestamp=format_timestamp(body.timestamp),
        user_id=user_id,
        session_id=body.session_id,
        os_name=system.os_name,
        os_version=system.os_version,
        locale=locale,
        app_version=system.app_version,
        app_build_number=system.app_build_number,
        engine_name=system.engine_name,
        engine_version=system.engine_version,
        sdk_version=system.sdk_version,
        country_code=location.country_code,
        region_name=location.region_name,
        city=location.city,
        string_props=_to_json(string_props),
        numeric_props=_to_json(numeric_props),
        ttl=format_timestamp(body.timestamp + ttl),
    )


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with microseconds and a ``Z`` suffix."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _to_json(value: Mapping[str, object]) -> str:
    return json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )
