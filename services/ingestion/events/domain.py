"""Domain contracts for Event Ingestion Service payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Ingestion-specific error codes.
APP_KEY_MISSING = "APP_KEY_MISSING"
APP_KEY_INVALID_FORMAT = "APP_KEY_INVALID_FORMAT"
APP_KEY_INVALID_REGION = "APP_KEY_INVALID_REGION"
APP_NOT_FOUND = "APP_NOT_FOUND"
INVALID_EVENT = "INVALID_EVENT"
TOO_MANY_EVENTS = "TOO_MANY_EVENTS"

PropValue = str | bool | int | float


class _WireModel(BaseModel):
    """Inbound JSON shape using camelCase field names on the wire."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SystemProps(_WireModel):
    """SDK-reported device and runtime properties of one event."""

    is_debug: bool = False
    os_name: str = ""
    os_version: str = ""
    locale: str = ""
    app_version: str = ""
    app_build_number: str = ""
    engine_name: str = ""
    engine_version: str = ""
    sdk_version: str = ""

    @field_validator(
        "os_name",
        "os_version",
        "locale",
        "app_version",
        "app_build_number",
        "engine_name",
        "engine_version",
        "sdk_version",
        mode="before",
    )
    @classmethod
    def _null_to_empty(cls, value: object) -> object:
        """Treat JSON nulls as empty strings."""
        return "" if value is None else value

    @field_validator("is_debug", mode="before")
    @classmethod
    def _null_to_false(cls, value: object) -> object:
        """Treat a JSON null debug flag as false."""
        return False if value is None else value


class EventBody(_WireModel):
    """One client-submitted analytics event."""

    timestamp: datetime
    session_id: str
    event_name: str
    system_props: SystemProps = Field(default_factory=SystemProps)
    props: dict[str, PropValue] = Field(default_factory=dict)

    @field_validator("system_props", "props", mode="before")
    @classmethod
    def _null_to_default(cls, value: object) -> object:
        """Treat JSON nulls as empty objects."""
        return {} if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps as UTC and convert aware ones to UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class EventRow(BaseModel):
    """Normalized row forwarded to the downstream analytics store."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_id: str
    event_name: str
    timestamp: str
    user_id: str
    session_id: str
    os_name: str
    os_version: str
    locale: str
    app_version: str
    app_build_number: str
    engine_name: str
    engine_version: str
    sdk_version: str
    country_code: str
    region_name: str
    city: str
    string_props: str
    numeric_props: str
    ttl: str


class IngestResult(BaseModel):
    """Outcome counts for one ingestion call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    accepted: int
    rejected: int


class ClientLocation(BaseModel):
    """Coarse geolocation resolved for one client address."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    country_code: str = ""
    region_name: str = ""
    city: str = ""


class UserAgentInfo(BaseModel):
    """Operating system and browser engine parsed from a user agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    os_name: str = ""
    os_version: str = ""
    engine_name: str = ""
    engine_version: str = ""


class AppKeyStatus(str, Enum):
    """Outcome of resolving one inbound app key."""

    OK = "ok"
    MISSING = "missing"
    INVALID_FORMAT = "invalid_format"
    INVALID_REGION = "invalid_region"
    NOT_FOUND = "not_found"


class AppKeyResolution(BaseModel):
    """Resolved app id, or the reason the key was rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_id: str = ""
    status: AppKeyStatus


class LocaleResult(BaseModel):
    """Normalized locale, or a warning explaining why it was dropped."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: str = ""
    warning: str | None = None
