"""Data-layer exports for Identity Service."""

from services.ingestion.identity.data.repository import PostgresSaltRepository
from services.ingestion.identity.data.runtime import IdentityPostgresRuntime

__all__ = ["IdentityPostgresRuntime", "PostgresSaltRepository"]
