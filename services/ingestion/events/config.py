"""Pydantic settings for Event Ingestion Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.tally_shared.config import TallySettings, resolve_component_settings
from services.ingestion.events.component import SERVICE_COMPONENT_ID


class EventIngestionSettings(BaseModel):
    """Event validation limits, app-key registry and downstream sink settings.

    ``app_keys`` maps upper-case app keys to app ids and backs the default
    static registry. ``allowed_regions`` lists the key regions this
    deployment serves.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_batch_size: int = Field(default=25, gt=0)
    max_event_name_length: int = Field(default=60, gt=0)
    max_session_id_length: int = Field(default=36, gt=0)
    max_prop_string_length: int = Field(default=200, gt=0)
    max_future_skew_seconds: int = Field(default=10 * 60, ge=0)
    max_event_age_days: int = Field(default=30, gt=0)
    event_ttl_days: int = Field(default=5 * 365, gt=0)
    debug_event_ttl_days: int = Field(default=7, gt=0)

    allowed_regions: tuple[str, ...] = ("DEV", "SH")
    app_keys: dict[str, str] = Field(default_factory=dict)

    ingestion_url: str = ""
    ingestion_token: str = ""
    ingestion_timeout_seconds: float = Field(default=10.0, gt=0)

    geoip_database_path: str = ""

    @field_validator("allowed_regions")
    @classmethod
    def _normalize_regions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Upper-case configured regions and require at least one."""
        normalized = tuple(item.strip().upper() for item in value if item.strip())
        if not normalized:
            raise ValueError("allowed_regions must list at least one region")
        return normalized

    @field_validator("app_keys")
    @classmethod
    def _normalize_app_keys(cls, value: dict[str, str]) -> dict[str, str]:
        """Upper-case configured app keys to match inbound header handling."""
        return {key.strip().upper(): app_id.strip() for key, app_id in value.items()}


def resolve_event_ingestion_settings(settings: TallySettings) -> EventIngestionSettings:
    """Resolve Event Ingestion settings from ``components.service.events``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=EventIngestionSettings,
    )
