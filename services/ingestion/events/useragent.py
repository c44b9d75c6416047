"""Keyword and regex based user-agent parsing for web events."""

from __future__ import annotations

import re

from services.ingestion.events.domain import UserAgentInfo
from services.ingestion.events.interfaces import UserAgentParser

_VERSION = r"(\d+(?:[._]\d+)*)"

# Order matters: iOS agents also say "Mac OS X", Android agents also say "Linux".
_OPERATING_SYSTEMS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Windows", re.compile(rf"Windows NT {_VERSION}")),
    ("iOS", re.compile(rf"(?:iPhone|iPad|iPod).*? OS {_VERSION}")),
    ("macOS", re.compile(rf"Mac OS X {_VERSION}")),
    ("Android", re.compile(rf"Android {_VERSION}")),
    ("ChromeOS", re.compile(rf"CrOS \S+ {_VERSION}")),
    ("Linux", re.compile(r"Linux()")),
)

# Order matters: Edge and Opera agents also say "Chrome", Chrome agents also
# say "Safari".
_ENGINES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Edge", re.compile(rf"Edg(?:e|A|iOS)?/{_VERSION}")),
    ("Opera", re.compile(rf"OPR/{_VERSION}")),
    ("Firefox", re.compile(rf"(?:Firefox|FxiOS)/{_VERSION}")),
    ("Chrome", re.compile(rf"(?:Chrome|CriOS)/{_VERSION}")),
    ("Safari", re.compile(rf"Version/{_VERSION}.*Safari/")),
)

_WINDOWS_NT_VERSIONS = {"10.0": "10", "6.3": "8.1", "6.2": "8", "6.1": "7"}


class RegexUserAgentParser(UserAgentParser):
    """Coarse OS and browser classification for common browser agents."""

    def parse(self, user_agent: str) -> UserAgentInfo:
        os_name, os_version = _first_match(_OPERATING_SYSTEMS, user_agent)
        if os_name == "Windows":
            os_version = _WINDOWS_NT_VERSIONS.get(os_version, os_version)
        engine_name, engine_version = _first_match(_ENGINES, user_agent)
        return UserAgentInfo(
            os_name=os_name,
            os_version=os_version,
            engine_name=engine_name,
            engine_version=engine_version,
        )


def _first_match(
    candidates: tuple[tuple[str, re.Pattern[str]], ...], user_agent: str
) -> tuple[str, str]:
    for name, pattern in candidates:
        match = pattern.search(user_agent)
        if match is not None:
            return name, match.group(1).replace("_", ".")
    return "", ""
