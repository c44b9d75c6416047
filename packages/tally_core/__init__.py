"""Tally Core process wiring: startup migrations, health and HTTP runtime."""

from packages.tally_core.migrations import (
    MigrationExecutionError,
    MigrationRunResult,
    discover_service_migration_configs,
    run_startup_migrations,
)

__all__ = [
    "MigrationExecutionError",
    "MigrationRunResult",
    "discover_service_migration_configs",
    "run_startup_migrations",
]
