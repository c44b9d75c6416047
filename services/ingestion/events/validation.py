"""Inbound event and app-key validation rules."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import datetime, timedelta

from pydantic import ValidationError

from services.ingestion.events.config import EventIngestionSettings
from services.ingestion.events.domain import (
    AppKeyResolution,
    AppKeyStatus,
    EventBody,
)
from services.ingestion.events.interfaces import AppRegistry

_APP_KEY_RE = re.compile(r"^A-(?P<region>[A-Z]+)-\d+$")


def validate_event(
    raw: object,
    *,
    settings: EventIngestionSettings,
    now: datetime,
) -> tuple[EventBody | None, str]:
    """Parse and check one raw event.

    Returns the parsed body and an empty message, or ``None`` and a
    client-facing message naming the first problem found.
    """
    if not isinstance(raw, Mapping):
        return None, "event must be a JSON object"
    try:
        body = EventBody.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "event"
        return None, f"invalid {location}: {first['msg']}"

    message = _check_event_rules(body, settings=settings, now=now)
    if message:
        return None, message
    return body, ""


def _check_event_rules(
    body: EventBody,
    *,
    settings: EventIngestionSettings,
    now: datetime,
) -> str:
    if body.event_name.strip() == "":
        return "eventName is required"
    if len(body.event_name) > settings.max_event_name_length:
        return (
            f"eventName must have at most {settings.max_event_name_length} characters"
        )
    if body.session_id.strip() == "":
        return "sessionId is required"
    if len(body.session_id) > settings.max_session_id_length:
        return (
            f"sessionId must have at most {settings.max_session_id_length} characters"
        )
    if body.timestamp > now + timedelta(seconds=settings.max_future_skew_seconds):
        return f"timestamp {body.timestamp.isoformat()} is in the future"
    if body.timestamp < now - timedelta(days=settings.max_event_age_days):
        return f"timestamp {body.timestamp.isoformat()} is too old"
    for key, value in body.props.items():
        if key.strip() == "":
            return "prop names must not be empty"
        if isinstance(value, float) and not math.isfinite(value):
            return f"prop '{key}' must be a finite number"
        if isinstance(value, str) and len(value) > settings.max_prop_string_length:
            return (
                f"prop '{key}' must have at most "
                f"{settings.max_prop_string_length} characters"
            )
    return ""


def resolve_app_key(
    app_key: str,
    *,
    registry: AppRegistry,
    allowed_regions: tuple[str, ...],
) -> AppKeyResolution:
    """Check an app key's shape and region, then look up its app id."""
    key = app_key.strip().upper()
    if key == "":
        return AppKeyResolution(status=AppKeyStatus.MISSING)
    match = _APP_KEY_RE.match(key)
    if match is None:
        return AppKeyResolution(status=AppKeyStatus.INVALID_FORMAT)
    if match.group("region") not in allowed_regions:
        return AppKeyResolution(status=AppKeyStatus.INVALID_REGION)
    app_id = registry.find_app_id(app_key=key)
    if not app_id:
        return AppKeyResolution(status=AppKeyStatus.NOT_FOUND)
    return AppKeyResolution(app_id=app_id, status=AppKeyStatus.OK)
