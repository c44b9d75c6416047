"""Row construction tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from services.ingestion.events.domain import ClientLocation, EventBody
from services.ingestion.events.rows import (
    build_event_row,
    format_timestamp,
    split_props,
)


def _body(*, is_debug: bool = False) -> EventBody:
    return EventBody.model_validate(
        {
            "timestamp": "2024-01-15T10:00:00.5Z",
            "sessionId": "session-1",
            "eventName": "checkout",
            "systemProps": {
                "isDebug": is_debug,
                "osName": "Android",
                "osVersion": "14",
                "appVersion": "2.1.0",
                "sdkVersion": "kotlin@1.0.0",
            },
            "props": {"plan": "pro", "paid": True, "items": 3, "total": 9.5},
        }
    )


def test_split_props_routes_booleans_to_strings() -> None:
    strings, numbers = split_props({"plan": "pro", "paid": False, "items": 3})

    assert strings == {"plan": "pro", "paid": "false"}
    assert numbers == {"items": 3}


def test_row_carries_identity_location_and_props() -> None:
    row = build_event_row(
        body=_body(),
        app_id="APP1",
        user_id="AB" * 32,
        location=ClientLocation(country_code="PT", region_name="Lisbon", city="Lisbon"),
        locale="pt-PT",
        ttl=timedelta(days=1),
    )

    assert row.app_id == "APP1"
    assert row.user_id == "AB" * 32
    assert row.timestamp == "2024-01-15T10:00:00.500000Z"
    assert row.ttl == "2024-01-16T10:00:00.500000Z"
    assert row.os_name == "Android"
    assert row.sdk_version == "kotlin@1.0.0"
    assert row.country_code == "PT"
    assert row.locale == "pt-PT"
    assert json.loads(row.string_props) == {"plan": "pro", "paid": "true"}
    assert json.loads(row.numeric_props) == {"items": 3, "total": 9.5}


def test_debug_events_are_routed_to_debug_app() -> None:
    row = build_event_row(
        body=_body(is_debug=True),
        app_id="APP1",
        user_id="CD" * 32,
        location=ClientLocation(),
        locale="",
        ttl=timedelta(days=7),
    )

    assert row.app_id == "APP1_DEBUG"
    assert row.country_code == ""


def test_format_timestamp_uses_z_suffix() -> None:
    value = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    assert format_timestamp(value) == "2024-01-15T10:00:00.000000Z"


def test_non_finite_numbers_never_reach_row_json() -> None:
    body = _body().model_copy(update={"props": {"ratio": float("nan")}})

    with pytest.raises(ValueError, match="not JSON compliant"):
        build_event_row(
            body=body,
            app_id="APP1",
            user_id="AB" * 32,
            location=ClientLocation(),
            locale="",
            ttl=timedelta(days=1),
        )
