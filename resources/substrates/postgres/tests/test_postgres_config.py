"""Tests for Postgres substrate settings and engine wiring."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from packages.tally_shared.config import TallySettings
from resources.substrates.postgres.config import (
    PostgresSettings,
    resolve_postgres_settings,
)
from resources.substrates.postgres.engine import create_postgres_engine


def test_resolve_postgres_settings_reads_substrate_namespace() -> None:
    """Settings should resolve from ``components.substrate.postgres``."""
    settings = TallySettings(
        components={
            "substrate": {
                "postgres": {
                    "url": "postgresql+psycopg://u:p@db:5432/events",
                    "pool_size": 2,
                }
            }
        }
    )

    resolved = resolve_postgres_settings(settings)

    assert resolved.url == "postgresql+psycopg://u:p@db:5432/events"
    assert resolved.pool_size == 2
    assert resolved.pool_pre_ping is True


def test_postgres_settings_reject_blank_url_and_unknown_sslmode() -> None:
    """Blank URLs and unsupported sslmode values should fail validation."""
    with pytest.raises(ValidationError, match="postgres url is required"):
        PostgresSettings(url="   ")
    with pytest.raises(ValidationError):
        PostgresSettings(sslmode="sometimes")


def test_engine_passes_pool_and_connect_settings(monkeypatch) -> None:
    """Engine builder should pass pool and connect args through."""
    captured: dict[str, object] = {}

    def fake_create_engine(url: str, **kwargs: object) -> object:
        captured["url"] = url
        captured.update(kwargs)
        return object()

    import resources.substrates.postgres.engine as engine_module

    monkeypatch.setattr(engine_module, "create_engine", fake_create_engine)

    create_postgres_engine(
        PostgresSettings(pool_pre_ping=False, connect_timeout_seconds=3.7)
    )

    assert captured["pool_pre_ping"] is False
    assert captured["connect_args"] == {"connect_timeout": 3, "sslmode": "prefer"}
