"""Validation helpers for envelope metadata."""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .meta import EnvelopeKind, EnvelopeMeta


class _ValidatedEnvelopeMeta(BaseModel):
    """Validation-only mirror of ``EnvelopeMeta``."""

    model_config = ConfigDict(extra="forbid")

    envelope_id: str = Field(min_length=1)
    trace_id: str = Field(min_length=1)
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str = Field(min_length=1)
    principal: str = Field(min_length=1)

    @model_validator(mode="after")
    def _enforce_kind(self) -> "_ValidatedEnvelopeMeta":
        """Reject unspecified envelope kinds."""
        if self.kind == EnvelopeKind.UNSPECIFIED:
            raise ValueError("metadata.kind must be specified")
        return self


def validate_meta(meta: EnvelopeMeta) -> None:
    """Validate required envelope metadata fields.

    Raises ``ValueError`` with a stable ``metadata.<field>`` message.
    """
    try:
        _ValidatedEnvelopeMeta.model_validate(asdict(meta))
    except ValidationError as exc:
        raise ValueError(_meta_error_message(exc)) from None


def utc_now() -> datetime:
    """Return the current UTC timestamp."""
    return datetime.now(UTC)


def _meta_error_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = first.get("loc", ())
    if not location:
        return str(first.get("msg", "invalid metadata"))
    field_name = str(location[0])
    if field_name == "kind":
        return "metadata.kind must be specified"
    return f"metadata.{field_name} is required"
