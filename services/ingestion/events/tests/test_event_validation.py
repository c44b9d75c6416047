"""Validation tests for inbound events and app keys."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from services.ingestion.events.config import EventIngestionSettings
from services.ingestion.events.domain import AppKeyStatus
from services.ingestion.events.registry import StaticAppRegistry
from services.ingestion.events.validation import resolve_app_key, validate_event

_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
_SETTINGS = EventIngestionSettings()


def _event(**overrides: object) -> dict[str, object]:
    event: dict[str, object] = {
        "timestamp": "2024-01-15T11:59:00Z",
        "sessionId": "session-1",
        "eventName": "app_started",
        "systemProps": {"osName": "iOS", "locale": "en_US"},
        "props": {"plan": "pro", "count": 3},
    }
    event.update(overrides)
    return event


def test_valid_event_parses_camel_case_fields() -> None:
    body, message = validate_event(_event(), settings=_SETTINGS, now=_NOW)

    assert message == ""
    assert body is not None
    assert body.session_id == "session-1"
    assert body.event_name == "app_started"
    assert body.system_props.os_name == "iOS"
    assert body.timestamp == datetime(2024, 1, 15, 11, 59, tzinfo=UTC)
    assert body.props == {"plan": "pro", "count": 3}


def test_null_system_props_and_props_default_to_empty() -> None:
    body, _ = validate_event(
        _event(systemProps=None, props=None), settings=_SETTINGS, now=_NOW
    )

    assert body is not None
    assert body.system_props.os_name == ""
    assert body.system_props.is_debug is False
    assert body.props == {}


def test_offset_timestamp_is_converted_to_utc() -> None:
    body, _ = validate_event(
        _event(timestamp="2024-01-15T06:30:00-05:00"), settings=_SETTINGS, now=_NOW
    )

    assert body is not None
    assert body.timestamp == datetime(2024, 1, 15, 11, 30, tzinfo=UTC)


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"eventName": ""}, "eventName is required"),
        ({"eventName": "x" * 61}, "eventName must have at most 60 characters"),
        ({"sessionId": "  "}, "sessionId is required"),
        ({"sessionId": "s" * 37}, "sessionId must have at most 36 characters"),
        ({"timestamp": "2024-01-15T12:30:00Z"}, "is in the future"),
        ({"timestamp": "2023-12-01T12:00:00Z"}, "is too old"),
        ({"props": {"": "value"}}, "prop names must not be empty"),
        ({"props": {"note": "n" * 201}}, "prop 'note' must have at most 200"),
    ],
)
def test_rule_violations_are_reported(
    overrides: dict[str, object], expected: str
) -> None:
    body, message = validate_event(_event(**overrides), settings=_SETTINGS, now=_NOW)

    assert body is None
    assert expected in message


def test_small_clock_skew_is_tolerated() -> None:
    future = (_NOW + timedelta(minutes=5)).isoformat()

    body, _ = validate_event(_event(timestamp=future), settings=_SETTINGS, now=_NOW)

    assert body is not None


def test_missing_required_field_names_the_wire_field() -> None:
    event = _event()
    del event["sessionId"]

    body, message = validate_event(event, settings=_SETTINGS, now=_NOW)

    assert body is None
    assert message.startswith("invalid sessionId:")


def test_nested_prop_values_are_rejected() -> None:
    body, message = validate_event(
        _event(props={"nested": {"a": 1}}), settings=_SETTINGS, now=_NOW
    )

    assert body is None
    assert message.startswith("invalid props.nested")


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_prop_numbers_are_rejected(value: float) -> None:
    body, message = validate_event(
        _event(props={"ratio": value}), settings=_SETTINGS, now=_NOW
    )

    assert body is None
    assert message == "prop 'ratio' must be a finite number"


def test_non_object_event_is_rejected() -> None:
    body, message = validate_event(["not", "an", "event"], settings=_SETTINGS, now=_NOW)

    assert body is None
    assert message == "event must be a JSON object"


_REGISTRY = StaticAppRegistry({"A-DEV-1234567890": "APP1"})


@pytest.mark.parametrize(
    ("app_key", "status"),
    [
        ("", AppKeyStatus.MISSING),
        ("   ", AppKeyStatus.MISSING),
        ("not-a-key", AppKeyStatus.INVALID_FORMAT),
        ("A-DEV-12ab", AppKeyStatus.INVALID_FORMAT),
        ("A-EU-1234567890", AppKeyStatus.INVALID_REGION),
        ("A-DEV-999", AppKeyStatus.NOT_FOUND),
    ],
)
def test_app_key_rejections(app_key: str, status: AppKeyStatus) -> None:
    resolution = resolve_app_key(
        app_key, registry=_REGISTRY, allowed_regions=("DEV", "SH")
    )

    assert resolution.status == status
    assert resolution.app_id == ""


def test_app_key_lookup_is_case_insensitive() -> None:
    resolution = resolve_app_key(
        "a-dev-1234567890", registry=_REGISTRY, allowed_regions=("DEV",)
    )

    assert resolution.status == AppKeyStatus.OK
    assert resolution.app_id == "APP1"
