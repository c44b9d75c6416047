"""Concrete Event Ingestion Service implementation."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from packages.tally_shared.config import TallySettings
from packages.tally_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    child_meta,
    failure,
    success,
    utc_now,
    validate_meta,
)
from packages.tally_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    not_found_error,
    validation_error,
)
from packages.tally_shared.http import HttpClient, HttpClientError
from packages.tally_shared.logging import get_logger, public_api_instrumented
from services.ingestion.events import domain
from services.ingestion.events.client import HttpIngestionClient
from services.ingestion.events.component import SERVICE_COMPONENT_ID
from services.ingestion.events.config import (
    EventIngestionSettings,
    resolve_event_ingestion_settings,
)
from services.ingestion.events.domain import (
    AppKeyStatus,
    ClientLocation,
    EventBody,
    EventRow,
    IngestResult,
)
from services.ingestion.events.geoip import MaxMindGeoIPClient, NullGeoIPClient
from services.ingestion.events.interfaces import (
    AppRegistry,
    GeoIPClient,
    IngestionClient,
    UserAgentParser,
)
from services.ingestion.events.locales import format_locale
from services.ingestion.events.registry import StaticAppRegistry
from services.ingestion.events.rows import build_event_row
from services.ingestion.events.service import EventIngestionService
from services.ingestion.events.useragent import RegexUserAgentParser
from services.ingestion.events.validation import resolve_app_key, validate_event
from services.ingestion.identity.service import IdentityService

_LOGGER = get_logger(__name__)

_APP_KEY_HINT = "Find your app key on the Tally console."


class DefaultEventIngestionService(EventIngestionService):
    """Default ingestion pipeline: validate, resolve, enrich, hash, forward."""

    def __init__(
        self,
        *,
        settings: EventIngestionSettings,
        identity: IdentityService,
        registry: AppRegistry,
        user_agent_parser: UserAgentParser,
        geoip: GeoIPClient,
        ingestion_client: IngestionClient,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._identity = identity
        self._registry = registry
        self._user_agent_parser = user_agent_parser
        self._geoip = geoip
        self._ingestion_client = ingestion_client
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: TallySettings,
        *,
        identity: IdentityService,
    ) -> "DefaultEventIngestionService":
        """Build the service with settings-backed registry, GeoIP and sink."""
        service_settings = resolve_event_ingestion_settings(settings)
        geoip: GeoIPClient = (
            MaxMindGeoIPClient(database_path=service_settings.geoip_database_path)
            if service_settings.geoip_database_path
            else NullGeoIPClient()
        )
        return cls(
            settings=service_settings,
            identity=identity,
            registry=StaticAppRegistry(service_settings.app_keys),
            user_agent_parser=RegexUserAgentParser(),
            geoip=geoip,
            ingestion_client=HttpIngestionClient(
                url=service_settings.ingestion_url,
                token=service_settings.ingestion_token,
                http=HttpClient(
                    timeout_seconds=service_settings.ingestion_timeout_seconds
                ),
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("app_key",),
    )
    def ingest_event(
        self,
        *,
        meta: EnvelopeMeta,
        app_key: str,
        user_agent: str,
        client_ip: str,
        event: Mapping[str, Any],
        timeout_seconds: float | None = None,
    ) -> Envelope[IngestResult]:
        """Ingest one event; any validation problem fails the call."""
        meta_errors = _meta_errors(meta)
        if meta_errors:
            return failure(meta=meta, errors=meta_errors)

        body, message = validate_event(
            event, settings=self._settings, now=self._clock()
        )
        if body is None:
            _LOGGER.warning("Event rejected: %s", message)
            return failure(
                meta=meta,
                errors=[validation_error(message, code=domain.INVALID_EVENT)],
            )

        app_id, errors = self._resolve_app_id(app_key)
        if errors:
            return failure(meta=meta, errors=errors)

        return self._forward(
            meta=meta,
            app_id=app_id,
            user_agent=user_agent,
            client_ip=client_ip,
            bodies=[body],
            rejected=0,
            timeout_seconds=timeout_seconds,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("app_key",),
    )
    def ingest_events(
        self,
        *,
        meta: EnvelopeMeta,
        app_key: str,
        user_agent: str,
        client_ip: str,
        events: Sequence[Any],
        timeout_seconds: float | None = None,
    ) -> Envelope[IngestResult]:
        """Ingest a batch; invalid events are dropped and counted as rejected."""
        meta_errors = _meta_errors(meta)
        if meta_errors:
            return failure(meta=meta, errors=meta_errors)

        if len(events) > self._settings.max_batch_size:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "too many events in request; maximum is "
                        f"{self._settings.max_batch_size}",
                        code=domain.TOO_MANY_EVENTS,
                    )
                ],
            )

        now = self._clock()
        bodies: list[EventBody] = []
        for raw in events:
            body, message = validate_event(raw, settings=self._settings, now=now)
            if body is None:
                _LOGGER.warning("Event dropped from batch: %s", message)
                continue
            bodies.append(body)

        rejected = len(events) - len(bodies)
        if not bodies:
            return success(
                meta=meta, payload=IngestResult(accepted=0, rejected=rejected)
            )

        app_id, errors = self._resolve_app_id(app_key)
        if errors:
            return failure(meta=meta, errors=errors)

        return self._forward(
            meta=meta,
            app_id=app_id,
            user_agent=user_agent,
            client_ip=client_ip,
            bodies=bodies,
            rejected=rejected,
            timeout_seconds=timeout_seconds,
        )

    def _resolve_app_id(self, app_key: str) -> tuple[str, list[ErrorDetail]]:
        """Resolve ``app_key`` or return the client-facing rejection."""
        key = app_key.strip().upper()
        resolution = resolve_app_key(
            key,
            registry=self._registry,
            allowed_regions=self._settings.allowed_regions,
        )
        if resolution.status == AppKeyStatus.OK:
            return resolution.app_id, []

        if resolution.status == AppKeyStatus.MISSING:
            error = validation_error(
                f"Missing App-Key header. {_APP_KEY_HINT}",
                code=domain.APP_KEY_MISSING,
            )
        elif resolution.status == AppKeyStatus.INVALID_FORMAT:
            error = validation_error(
                f"Invalid format for app key '{key}'. {_APP_KEY_HINT}",
                code=domain.APP_KEY_INVALID_FORMAT,
            )
        elif resolution.status == AppKeyStatus.INVALID_REGION:
            error = validation_error(
                f"Invalid region for app key '{key}'. This key is meant for "
                f"another region. {_APP_KEY_HINT}",
                code=domain.APP_KEY_INVALID_REGION,
            )
        else:
            error = not_found_error(
                f"Application not found with given app key '{key}'. {_APP_KEY_HINT}",
                code=domain.APP_NOT_FOUND,
            )
        _LOGGER.warning(error.message)
        return "", [error]

    def _forward(
        self,
        *,
        meta: EnvelopeMeta,
        app_id: str,
        user_agent: str,
        client_ip: str,
        bodies: Sequence[EventBody],
        rejected: int,
        timeout_seconds: float | None,
    ) -> Envelope[IngestResult]:
        """Hash identities, build rows and forward them as one delivery."""
        location = self._locate(client_ip)
        rows: list[EventRow] = []
        for raw_body in bodies:
            body, identity_user_agent = self._enrich(raw_body, user_agent=user_agent)
            identity = self._identity.compute_identity(
                meta=child_meta(meta, source=SERVICE_COMPONENT_ID),
                timestamp=body.timestamp,
                app_id=app_id,
                session_id=body.session_id,
                user_agent=identity_user_agent,
                client_ip=client_ip,
                timeout_seconds=timeout_seconds,
            )
            if not identity.ok or identity.payload is None:
                return failure(meta=meta, errors=identity.errors)
            rows.append(
                self._build_row(
                    body=body,
                    app_id=app_id,
                    user_id=identity.payload.value.user_id,
                    location=location,
                )
            )

        try:
            self._ingestion_client.send_rows(rows, timeout_seconds=timeout_seconds)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="send_rows", exc=exc)
        return success(
            meta=meta,
            payload=IngestResult(accepted=len(rows), rejected=rejected),
        )

    def _enrich(self, body: EventBody, *, user_agent: str) -> tuple[EventBody, str]:
        """Fill web OS/engine fields, or fabricate a user agent for native SDKs.

        Web SDKs never send ``osName``; native SDKs do, and their transport
        user agent is not meaningful for identity hashing.
        """
        system = body.system_props
        if system.os_name == "":
            if user_agent == "":
                return body, user_agent
            parsed = self._user_agent_parser.parse(user_agent)
            enriched = system.model_copy(
                update={
                    "os_name": parsed.os_name,
                    "os_version": parsed.os_version,
                    "engine_name": parsed.engine_name,
                    "engine_version": parsed.engine_version,
                }
            )
            return body.model_copy(update={"system_props": enriched}), user_agent

        fabricated = (
            f"{system.os_name}/{system.os_version} "
            f"{system.engine_name}/{system.engine_version} {system.locale}"
        )
        return body, fabricated

    def _build_row(
        self,
        *,
        body: EventBody,
        app_id: str,
        user_id: str,
        location: ClientLocation,
    ) -> EventRow:
        system = body.system_props
        locale = format_locale(system.locale)
        if locale.warning is not None:
            _LOGGER.warning(
                "Invalid locale received: locale=%r os_name=%s sdk_version=%s",
                system.locale,
                system.os_name,
                system.sdk_version,
            )
        ttl_days = (
            self._settings.debug_event_ttl_days
            if system.is_debug
            else self._settings.event_ttl_days
        )
        return build_event_row(
            body=body,
            app_id=app_id,
            user_id=user_id,
            location=location,
            locale=locale.value,
            ttl=timedelta(days=ttl_days),
        )

    def _locate(self, client_ip: str) -> ClientLocation:
        """Geolocate the client; lookup failures degrade to an empty location."""
        try:
            return self._geoip.locate(client_ip)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "GeoIP lookup failed: exception_type=%s",
                type(exc).__name__,
                exc_info=exc,
            )
            return ClientLocation()

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[Any]:
        """Map one downstream exception into structured envelope errors."""
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        retryable = exc.retryable if isinstance(exc, HttpClientError) else True
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_FAILURE,
                    retryable=retryable,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )


def _meta_errors(meta: EnvelopeMeta) -> list[ErrorDetail]:
    try:
        validate_meta(meta)
    except ValueError as exc:
        return [validation_error(str(exc))]
    return []
