"""Disposable Docker Postgres fixtures for real-provider integration tests."""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from packages.tally_core.migrations import run_startup_migrations
from packages.tally_shared.config import TallySettings
from tests.integration.helpers import real_provider_tests_enabled

_IMAGE = os.getenv("TALLY_INTEGRATION_POSTGRES_IMAGE", "postgres:16")
_CREDENTIAL = "tally"


def _docker(*args: str) -> str:
    """Run one docker CLI command and return its trimmed stdout."""
    completed = subprocess.run(
        ("docker", *args), check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


def _start_postgres() -> tuple[str, str]:
    """Start a throwaway Postgres container; return its id and DSN."""
    container_id = _docker(
        "run",
        "--detach",
        "--rm",
        "--publish",
        "127.0.0.1::5432",
        "--env",
        f"POSTGRES_USER={_CREDENTIAL}",
        "--env",
        f"POSTGRES_PASSWORD={_CREDENTIAL}",
        "--env",
        f"POSTGRES_DB={_CREDENTIAL}",
        _IMAGE,
    )
    # ``docker port`` prints ``host:port``, one line per address family.
    published = _docker("port", container_id, "5432/tcp").splitlines()[0]
    host, port = published.rsplit(":", maxsplit=1)
    dsn = (
        f"postgresql+psycopg://{_CREDENTIAL}:{_CREDENTIAL}@{host}:{port}/{_CREDENTIAL}"
    )
    return container_id, dsn


def _await_connections(dsn: str, *, timeout_seconds: float = 60.0) -> None:
    """Poll until the server accepts SQL or the deadline passes."""
    engine = create_engine(dsn)
    deadline = time.monotonic() + timeout_seconds
    try:
        while True:
            try:
                with engine.connect() as conn:
                    conn.exec_driver_sql("SELECT 1")
                return
            except OperationalError:
                if time.monotonic() >= deadline:
                    raise
                time.sleep(0.25)
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def postgres_dsn() -> Iterator[str]:
    """Yield the DSN of a Postgres container that lives for the test session."""
    if not real_provider_tests_enabled():
        pytest.skip("real-provider integration tests disabled")
    try:
        _docker("version")
    except (FileNotFoundError, subprocess.CalledProcessError):
        pytest.skip("docker unavailable for integration tests")

    container_id, dsn = _start_postgres()
    try:
        _await_connections(dsn)
        yield dsn
    finally:
        subprocess.run(
            ("docker", "stop", container_id), check=False, capture_output=True
        )


@pytest.fixture(scope="session")
def integration_settings(postgres_dsn: str) -> TallySettings:
    """Return settings pointing the Postgres substrate at the container."""
    return TallySettings(
        components={"substrate": {"postgres": {"url": postgres_dsn}}},
    )


@pytest.fixture(scope="session")
def migrated_integration_settings(
    integration_settings: TallySettings,
) -> TallySettings:
    """Apply startup migrations once and return the same settings."""
    run_startup_migrations(settings=integration_settings)
    return integration_settings
