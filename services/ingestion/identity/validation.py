"""Pydantic request-validation models for Identity Service API."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class ComputeIdentityRequest(_ValidationModel):
    """Validated compute-identity request shape.

    ``user_agent`` and ``client_ip`` are hashed exactly as received; only the
    keys used for cache and salt lookups are normalized.
    """

    timestamp: datetime
    app_id: str = Field(max_length=64)
    session_id: str = Field(max_length=128)
    user_agent: str
    client_ip: str
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("app_id", "session_id")
    @classmethod
    def _require_key(cls, value: str, info: ValidationInfo) -> str:
        """Require non-blank lookup keys and strip surrounding whitespace."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError(f"{info.field_name} is required")
        return normalized

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps as UTC and convert aware ones to UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @property
    def day(self) -> str:
        """Return the UTC calendar day of the event as ``YYYY-MM-DD``."""
        return self.timestamp.date().isoformat()
