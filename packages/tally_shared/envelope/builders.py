"""Convenience constructors for typed envelope results."""

from __future__ import annotations

from typing import Iterable, TypeVar

from packages.tally_shared.errors import ErrorDetail

from .envelope import Envelope
from .meta import EnvelopeMeta
from .payload import Payload

T = TypeVar("T")


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    """Build a successful envelope with payload and no errors."""
    return Envelope[T](metadata=meta, payload=Payload[T](value=payload), errors=[])


def failure(*, meta: EnvelopeMeta, errors: Iterable[ErrorDetail]) -> Envelope[T]:
    """Build a failed envelope carrying one or more errors and no payload."""
    collected = list(errors)
    if not collected:
        raise ValueError("failure envelopes require at least one error")
    return Envelope[T](metadata=meta, payload=None, errors=collected)
