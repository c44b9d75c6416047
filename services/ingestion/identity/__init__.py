"""Identity Service native package exports."""

from services.ingestion.identity.component import SERVICE_COMPONENT_ID
from services.ingestion.identity.config import IdentitySettings
from services.ingestion.identity.domain import AppSalt, HealthStatus, UserIdentity
from services.ingestion.identity.implementation import DefaultIdentityService
from services.ingestion.identity.service import (
    IdentityService,
    build_identity_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "AppSalt",
    "DefaultIdentityService",
    "HealthStatus",
    "IdentityService",
    "IdentitySettings",
    "UserIdentity",
    "build_identity_service",
]
