"""Core-managed startup migration orchestration for ingestion services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config

from packages.tally_shared.config import TallySettings
from packages.tally_shared.logging import get_logger
from resources.substrates.postgres import provision_schemas
from services.ingestion.identity.data.runtime import identity_postgres_schema

_LOGGER = get_logger(__name__)

# Services owning Postgres migrations, in upgrade order.
_MIGRATING_SERVICES: tuple[str, ...] = ("services.ingestion.identity",)

_REPO_ROOT = Path(__file__).resolve().parents[2]


class MigrationExecutionError(RuntimeError):
    """Raised when startup migration execution fails."""


@dataclass(frozen=True, slots=True)
class MigrationRunResult:
    """Summary of one startup migration pass."""

    provisioned_schemas: tuple[str, ...]
    executed_alembic_configs: tuple[str, ...]


def discover_service_migration_configs(
    *,
    repo_root: Path | None = None,
) -> tuple[Path, ...]:
    """Return existing alembic config files for migrating services in order."""
    root = (repo_root or _REPO_ROOT).resolve()
    config_paths: list[Path] = []
    for module_root in _MIGRATING_SERVICES:
        candidate = root / Path(*module_root.split(".")) / "migrations" / "alembic.ini"
        if candidate.exists():
            config_paths.append(candidate)
    return tuple(config_paths)


def run_startup_migrations(
    *,
    settings: TallySettings,
    repo_root: Path | None = None,
    upgrade_fn: Callable[[Config, str], None] = command.upgrade,
    provision_fn: Callable[..., tuple[str, ...]] = provision_schemas,
) -> MigrationRunResult:
    """Provision service schemas and run Alembic upgrades to ``head``."""
    provisioned = provision_fn(
        settings=settings, schemas=(identity_postgres_schema(settings),)
    )
    configs = discover_service_migration_configs(repo_root=repo_root)

    executed: list[str] = []
    for config_path in configs:
        config = Config(str(config_path))
        config.attributes["settings"] = settings
        try:
            upgrade_fn(config, "head")
        except Exception as exc:
            raise MigrationExecutionError(
                f"startup migration failed for config '{config_path}'"
            ) from exc
        executed.append(str(config_path))
        _LOGGER.info("Applied migrations: alembic_config=%s", config_path)

    return MigrationRunResult(
        provisioned_schemas=tuple(provisioned),
        executed_alembic_configs=tuple(executed),
    )
