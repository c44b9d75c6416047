"""Locale normalization for SDK-reported locale strings."""

from __future__ import annotations

import re

from services.ingestion.events.domain import LocaleResult

_LOCALE_RE = re.compile(
    r"^(?P<language>[A-Za-z]{2,3})"
    r"(?:[-_](?P<script>[A-Za-z]{4}))?"
    r"(?:[-_](?P<region>[A-Za-z]{2}|\d{3}))?$"
)


def format_locale(raw: str) -> LocaleResult:
    """Normalize ``raw`` into ``ll[-Ssss][-RR]`` form.

    POSIX suffixes such as ``.UTF-8`` or ``@euro`` are dropped. Unparseable
    values produce an empty locale plus a warning rather than an error.
    """
    candidate = raw.strip().split(".", 1)[0].split("@", 1)[0]
    if candidate == "":
        return LocaleResult()
    match = _LOCALE_RE.match(candidate)
    if match is None:
        return LocaleResult(warning=f"invalid locale '{raw}'")

    parts = [match.group("language").lower()]
    if match.group("script"):
        parts.append(match.group("script").title())
    if match.group("region"):
        parts.append(match.group("region").upper())
    return LocaleResult(value="-".join(parts))
