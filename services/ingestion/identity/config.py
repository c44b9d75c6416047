"""Pydantic settings for Identity Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.tally_shared.config import TallySettings, resolve_component_settings
from resources.substrates.postgres import validate_schema_name
from services.ingestion.identity.component import SERVICE_COMPONENT_ID


class IdentitySettings(BaseModel):
    """Identity Service cache and storage settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_name: str = "ingestion"
    salt_cache_ttl_seconds: int = Field(default=2 * 24 * 60 * 60, gt=0)
    session_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    max_cached_salts: int = Field(default=10_000, gt=0)
    max_cached_sessions: int = Field(default=500_000, gt=0)

    @field_validator("schema_name")
    @classmethod
    def _validate_schema_name(cls, value: str) -> str:
        """Require a schema name usable in ``SET LOCAL search_path``."""
        normalized = value.strip().lower()
        validate_schema_name(normalized)
        return normalized


def resolve_identity_settings(settings: TallySettings) -> IdentitySettings:
    """Resolve Identity settings from ``components.service.identity``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=IdentitySettings,
    )
