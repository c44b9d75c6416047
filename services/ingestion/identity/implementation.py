"""Concrete Identity Service implementation."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from packages.tally_shared.config import TallySettings
from packages.tally_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.tally_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    validation_error,
)
from packages.tally_shared.logging import get_logger, public_api_instrumented
from resources.substrates.postgres import is_postgres_error, normalize_postgres_error
from services.ingestion.identity.cache import SaltCache, SessionIdentityCache
from services.ingestion.identity.component import SERVICE_COMPONENT_ID
from services.ingestion.identity.config import (
    IdentitySettings,
    resolve_identity_settings,
)
from services.ingestion.identity.data import (
    IdentityPostgresRuntime,
    PostgresSaltRepository,
)
from services.ingestion.identity.domain import HealthStatus, UserIdentity
from services.ingestion.identity.hashing import user_id_hex
from services.ingestion.identity.interfaces import SaltRepository
from services.ingestion.identity.service import IdentityService
from services.ingestion.identity.validation import ComputeIdentityRequest

_LOGGER = get_logger(__name__)


class DefaultIdentityService(IdentityService):
    """Default Identity implementation with Postgres salts and in-process caches."""

    def __init__(
        self,
        *,
        repository: SaltRepository,
        salt_cache: SaltCache,
        session_cache: SessionIdentityCache,
    ) -> None:
        self._repository = repository
        self._salt_cache = salt_cache
        self._session_cache = session_cache

    @classmethod
    def from_settings(cls, settings: TallySettings) -> "DefaultIdentityService":
        """Build Identity Service from typed settings and owned resources."""
        runtime = IdentityPostgresRuntime.from_settings(settings)
        return cls.with_repository(
            settings=resolve_identity_settings(settings),
            repository=PostgresSaltRepository(runtime.schema_sessions),
        )

    @classmethod
    def with_repository(
        cls,
        *,
        settings: IdentitySettings,
        repository: SaltRepository,
    ) -> "DefaultIdentityService":
        """Build Identity Service with caches sized from ``settings``."""
        return cls(
            repository=repository,
            salt_cache=SaltCache(
                ttl_seconds=settings.salt_cache_ttl_seconds,
                max_entries=settings.max_cached_salts,
            ),
            session_cache=SessionIdentityCache(
                ttl_seconds=settings.session_ttl_seconds,
                max_entries=settings.max_cached_sessions,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness based on owned Postgres repository availability."""
        try:
            validate_meta(meta)
        except ValueError as exc:
            return failure(meta=meta, errors=[validation_error(str(exc))])
        try:
            self._repository.ping()
        except Exception as exc:  # noqa: BLE001
            return self._store_failure(meta=meta, operation="health", exc=exc)
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                substrate_ready=True,
                detail="ok",
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("app_id", "session_id"),
    )
    def compute_identity(
        self,
        *,
        meta: EnvelopeMeta,
        timestamp: datetime,
        app_id: str,
        session_id: str,
        user_agent: str,
        client_ip: str,
        timeout_seconds: float | None = None,
    ) -> Envelope[UserIdentity]:
        """Return the pinned session id or derive one from the day's salt."""
        request, errors = self._validate_request(
            meta=meta,
            model=ComputeIdentityRequest,
            payload={
                "timestamp": timestamp,
                "app_id": app_id,
                "session_id": session_id,
                "user_agent": user_agent,
                "client_ip": client_ip,
                "timeout_seconds": timeout_seconds,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, ComputeIdentityRequest)

        pinned = self._session_cache.get(
            app_id=request.app_id, session_id=request.session_id
        )
        if pinned is not None:
            return success(
                meta=meta,
                payload=UserIdentity(
                    app_id=request.app_id,
                    session_id=request.session_id,
                    day=request.day,
                    user_id=pinned,
                    pinned=True,
                ),
            )

        salt = self._salt_cache.get(app_id=request.app_id, day=request.day)
        if salt is None:
            try:
                stored = self._repository.get_or_create_salt(
                    app_id=request.app_id,
                    day=request.day,
                    timeout_seconds=request.timeout_seconds,
                )
            except Exception as exc:  # noqa: BLE001
                return self._store_failure(
                    meta=meta, operation="compute_identity", exc=exc
                )
            salt = stored.salt
            self._salt_cache.put(app_id=request.app_id, day=request.day, salt=salt)

        user_id = user_id_hex(
            client_ip=request.client_ip,
            user_agent=request.user_agent,
            salt=salt,
        )
        self._session_cache.put(
            app_id=request.app_id,
            session_id=request.session_id,
            user_id=user_id,
        )
        return success(
            meta=meta,
            payload=UserIdentity(
                app_id=request.app_id,
                session_id=request.session_id,
                day=request.day,
                user_id=user_id,
                pinned=False,
            ),
        )

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any],
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        try:
            validate_meta(meta)
        except ValueError as exc:
            return None, [validation_error(str(exc))]

        try:
            request = model.model_validate(payload)
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=codes.INVALID_ARGUMENT,
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        return request, []

    def _store_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map one salt-store exception into a failed envelope."""
        _LOGGER.warning(
            "%s failed due to salt store error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        if is_postgres_error(exc):
            return failure(meta=meta, errors=[normalize_postgres_error(exc)])
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_UNAVAILABLE,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )
