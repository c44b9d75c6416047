"""Domain contracts for Identity Service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SALT_LENGTH_BYTES = 16


class AppSalt(BaseModel):
    """Durable random salt for one app and one UTC calendar day."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_id: str
    day: str
    salt: bytes = Field(min_length=SALT_LENGTH_BYTES, max_length=SALT_LENGTH_BYTES)


class UserIdentity(BaseModel):
    """Pseudonymous user identifier resolved for one event.

    ``pinned`` is true when the value was served from the session cache
    rather than freshly derived from the day's salt.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_id: str
    session_id: str
    day: str
    user_id: str
    pinned: bool


class HealthStatus(BaseModel):
    """Identity Service and owned dependency readiness status payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    substrate_ready: bool
    detail: str
