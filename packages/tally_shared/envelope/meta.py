"""Envelope metadata primitives shared across Tally services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


class EnvelopeKind(str, Enum):
    """Envelope kinds used to classify service calls."""

    UNSPECIFIED = "unspecified"
    COMMAND = "command"
    EVENT = "event"
    RESULT = "result"


@dataclass(frozen=True)
class EnvelopeMeta:
    """Correlation metadata attached to every service call and its result."""

    envelope_id: str
    trace_id: str
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str
    principal: str


def new_meta(
    *,
    kind: EnvelopeKind,
    source: str,
    principal: str,
    trace_id: str | None = None,
    parent_id: str = "",
    timestamp: datetime | None = None,
) -> EnvelopeMeta:
    """Build ``EnvelopeMeta`` with fresh ids and a UTC timestamp."""
    return EnvelopeMeta(
        envelope_id=uuid4().hex,
        trace_id=trace_id or uuid4().hex,
        parent_id=parent_id,
        timestamp=datetime.now(UTC) if timestamp is None else _to_utc(timestamp),
        kind=kind,
        source=source,
        principal=principal,
    )


def child_meta(parent: EnvelopeMeta, *, source: str) -> EnvelopeMeta:
    """Derive metadata for a nested call that shares the parent trace."""
    return new_meta(
        kind=EnvelopeKind.COMMAND,
        source=source,
        principal=parent.principal,
        trace_id=parent.trace_id,
        parent_id=parent.envelope_id,
    )


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
