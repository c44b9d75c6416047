"""Settings loading entrypoint.

Precedence is always: explicit overrides > ``TALLY_*`` environment variables >
YAML config file > model defaults. The YAML path defaults to
``~/.config/tally/tally.yaml`` and can be moved with ``TALLY_CONFIG_FILE``.

Environment variables nest with ``__``, for example
``TALLY_COMPONENTS__SUBSTRATE__POSTGRES__URL=postgresql+psycopg://...``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar

from .models import DEFAULT_CONFIG_PATH, TallySettings

CONFIG_FILE_ENV = "TALLY_CONFIG_FILE"


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Return the YAML path to read, honoring ``TALLY_CONFIG_FILE``."""
    if config_path is not None:
        return Path(config_path)
    from_env = os.getenv(CONFIG_FILE_ENV, "").strip()
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def load_settings(
    *, config_path: str | Path | None = None, **overrides: Any
) -> TallySettings:
    """Load root settings from the standard source cascade."""
    resolved = resolve_config_path(config_path)

    class _FileBoundSettings(TallySettings):
        _config_path: ClassVar[Path] = resolved

    return _FileBoundSettings(**overrides)
