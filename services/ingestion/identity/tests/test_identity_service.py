"""Behavior tests for Identity Service pinning, salting and failure semantics."""

from __future__ import annotations

import hashlib
import threading
from datetime import UTC, datetime, timedelta, timezone
from itertools import count

from sqlalchemy.exc import OperationalError

from packages.tally_shared.envelope import EnvelopeKind, new_meta
from packages.tally_shared.errors import ErrorCategory, codes
from services.ingestion.identity.cache import SaltCache, SessionIdentityCache
from services.ingestion.identity.config import IdentitySettings
from services.ingestion.identity.domain import AppSalt
from services.ingestion.identity.implementation import DefaultIdentityService

_DAY_1 = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
_IP = "203.0.113.5"
_UA = "TestAgent/1.0"


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _FakeSaltRepository:
    """In-memory insert-or-ignore salt store."""

    def __init__(self, *, barrier: threading.Barrier | None = None) -> None:
        self.rows: dict[tuple[str, str], bytes] = {}
        self.calls: list[tuple[str, str, float | None]] = []
        self.raise_on_get: Exception | None = None
        self.raise_on_ping: Exception | None = None
        self._barrier = barrier
        self._lock = threading.Lock()
        self._counter = count(1)

    def get_or_create_salt(
        self,
        *,
        app_id: str,
        day: str,
        timeout_seconds: float | None = None,
    ) -> AppSalt:
        with self._lock:
            self.calls.append((app_id, day, timeout_seconds))
            candidate = next(self._counter).to_bytes(16, "big")
        if self._barrier is not None:
            self._barrier.wait()
        if self.raise_on_get is not None:
            raise self.raise_on_get
        with self._lock:
            stored = self.rows.setdefault((app_id, day), candidate)
        return AppSalt(app_id=app_id, day=day, salt=stored)

    def ping(self) -> None:
        if self.raise_on_ping is not None:
            raise self.raise_on_ping


def _meta() -> object:
    """Return valid envelope metadata for Identity test requests."""
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


def _service(
    repo: _FakeSaltRepository | None = None,
    *,
    clock: _FakeClock | None = None,
) -> tuple[DefaultIdentityService, _FakeSaltRepository]:
    """Build deterministic Identity service with in-memory dependencies."""
    repository = repo or _FakeSaltRepository()
    if clock is None:
        return (
            DefaultIdentityService.with_repository(
                settings=IdentitySettings(), repository=repository
            ),
            repository,
        )
    service = DefaultIdentityService(
        repository=repository,
        salt_cache=SaltCache(ttl_seconds=172800, max_entries=100, clock=clock),
        session_cache=SessionIdentityCache(
            ttl_seconds=86400, max_entries=100, clock=clock
        ),
    )
    return service, repository


def _compute(
    service: DefaultIdentityService,
    *,
    session_id: str = "S1",
    client_ip: str = _IP,
    user_agent: str = _UA,
    timestamp: datetime = _DAY_1,
    app_id: str = "APP1",
    timeout_seconds: float | None = None,
):
    return service.compute_identity(
        meta=_meta(),
        timestamp=timestamp,
        app_id=app_id,
        session_id=session_id,
        user_agent=user_agent,
        client_ip=client_ip,
        timeout_seconds=timeout_seconds,
    )


def _expected(ip: str, ua: str, salt: bytes) -> str:
    return hashlib.sha256(f"{ip}|{ua}".encode() + salt).hexdigest().upper()


def test_first_event_creates_salt_and_derives_hashed_id() -> None:
    service, repo = _service()

    result = _compute(service)

    assert result.ok is True
    assert result.payload is not None
    identity = result.payload.value
    stored = repo.rows[("APP1", "2024-01-15")]
    assert identity.user_id == _expected(_IP, _UA, stored)
    assert identity.day == "2024-01-15"
    assert identity.pinned is False


def test_end_to_end_scenario_pins_session_and_collides_across_sessions() -> None:
    service, repo = _service()

    u1 = _compute(service, session_id="S1").payload.value
    same_session_new_ip = _compute(
        service, session_id="S1", client_ip="198.51.100.7"
    ).payload.value
    other_session = _compute(service, session_id="S2").payload.value
    next_day = _compute(
        service, session_id="S3", timestamp=_DAY_1 + timedelta(days=1)
    ).payload.value

    assert same_session_new_ip.user_id == u1.user_id
    assert same_session_new_ip.pinned is True
    assert other_session.user_id == u1.user_id
    assert other_session.pinned is False
    assert next_day.user_id != u1.user_id
    assert set(repo.rows) == {("APP1", "2024-01-15"), ("APP1", "2024-01-16")}


def test_salt_cache_avoids_store_round_trips_within_a_day() -> None:
    service, repo = _service()

    for index in range(5):
        assert _compute(service, session_id=f"S{index}").ok is True

    assert len(repo.calls) == 1


def test_apps_get_isolated_salts() -> None:
    service, repo = _service()

    app1 = _compute(service, app_id="APP1").payload.value
    app2 = _compute(service, app_id="APP2").payload.value

    assert repo.rows[("APP1", "2024-01-15")] != repo.rows[("APP2", "2024-01-15")]
    assert app1.user_id != app2.user_id


def test_day_is_the_utc_date_of_the_event() -> None:
    service, repo = _service()
    eastern = timezone(timedelta(hours=-5))

    result = _compute(service, timestamp=datetime(2024, 1, 15, 23, 30, tzinfo=eastern))

    assert result.payload.value.day == "2024-01-16"
    assert repo.calls == [("APP1", "2024-01-16", None)]


def test_existing_salt_is_used_and_never_overwritten() -> None:
    repo = _FakeSaltRepository()
    seeded = b"\xaa" * 16
    repo.rows[("APP1", "2024-01-15")] = seeded
    service, _ = _service(repo)

    result = _compute(service)

    assert result.payload.value.user_id == _expected(_IP, _UA, seeded)
    assert repo.rows[("APP1", "2024-01-15")] == seeded


def test_recompute_after_ttl_expiry_returns_same_day_id() -> None:
    clock = _FakeClock()
    service, repo = _service(clock=clock)
    first = _compute(service).payload.value

    clock.advance(86400)
    after_session_ttl = _compute(service, client_ip="198.51.100.7")
    clock.advance(172800)
    after_salt_ttl = _compute(service, session_id="S9")

    assert after_session_ttl.ok is True
    assert after_session_ttl.payload.value.pinned is False
    assert after_session_ttl.payload.value.user_id == _expected(
        "198.51.100.7", _UA, repo.rows[("APP1", "2024-01-15")]
    )
    assert after_salt_ttl.ok is True
    assert after_salt_ttl.payload.value.user_id == first.user_id
    assert len(repo.calls) == 2


def test_concurrent_first_use_converges_on_one_salt() -> None:
    callers = 10
    repo = _FakeSaltRepository(barrier=threading.Barrier(callers, timeout=5))
    service, _ = _service(repo)
    results: list[str] = []
    failures: list[BaseException] = []
    lock = threading.Lock()

    def worker(index: int) -> None:
        try:
            envelope = _compute(service, session_id=f"S{index}")
            assert envelope.ok is True
            with lock:
                results.append(envelope.payload.value.user_id)
        except BaseException as exc:  # noqa: BLE001
            failures.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(callers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert failures == []
    assert len(repo.calls) == callers
    assert len(repo.rows) == 1
    assert set(results) == {_expected(_IP, _UA, repo.rows[("APP1", "2024-01-15")])}


def test_store_failure_returns_dependency_error_without_payload() -> None:
    service, repo = _service()
    repo.raise_on_get = OperationalError("SELECT 1", {}, Exception("refused"))

    result = _compute(service)

    assert result.ok is False
    assert result.payload is None
    assert result.errors[0].category == ErrorCategory.DEPENDENCY
    assert result.errors[0].code == codes.DEPENDENCY_UNAVAILABLE
    assert result.errors[0].retryable is True

    repo.raise_on_get = None
    recovered = _compute(service)
    assert recovered.ok is True
    assert recovered.payload.value.pinned is False


def test_non_database_store_failure_is_still_a_dependency_error() -> None:
    service, repo = _service()
    repo.raise_on_get = RuntimeError("boom")

    result = _compute(service)

    assert result.ok is False
    assert result.errors[0].category == ErrorCategory.DEPENDENCY
    assert result.errors[0].metadata["exception_type"] == "RuntimeError"


def test_timeout_budget_is_passed_to_the_store() -> None:
    service, repo = _service()

    assert _compute(service, timeout_seconds=2.5).ok is True

    assert repo.calls == [("APP1", "2024-01-15", 2.5)]


def test_blank_session_is_rejected_as_invalid_argument() -> None:
    service, repo = _service()

    result = _compute(service, session_id="   ")

    assert result.ok is False
    assert result.errors[0].code == codes.INVALID_ARGUMENT
    assert result.errors[0].metadata["field"] == "session_id"
    assert repo.calls == []


def test_invalid_meta_is_rejected() -> None:
    service, _ = _service()
    meta = new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="")

    result = service.compute_identity(
        meta=meta,
        timestamp=_DAY_1,
        app_id="APP1",
        session_id="S1",
        user_agent=_UA,
        client_ip=_IP,
    )

    assert result.ok is False
    assert result.errors[0].category == ErrorCategory.VALIDATION


def test_health_reports_store_readiness() -> None:
    service, repo = _service()

    healthy = service.health(meta=_meta())
    repo.raise_on_ping = OperationalError("SELECT 1", {}, Exception("refused"))
    unhealthy = service.health(meta=_meta())

    assert healthy.ok is True
    assert healthy.payload.value.substrate_ready is True
    assert unhealthy.ok is False
    assert unhealthy.errors[0].category == ErrorCategory.DEPENDENCY
