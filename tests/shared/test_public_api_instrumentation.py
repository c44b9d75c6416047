"""Tests for the public API instrumentation decorator."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from packages.tally_shared.envelope import EnvelopeKind, failure, new_meta, success
from packages.tally_shared.errors import dependency_error
from packages.tally_shared.logging import (
    CompletionContext,
    InvocationContext,
    public_api_instrumented,
)


class _RecordingConcern:
    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _BrokenConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("exporter down")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("exporter down")


def _meta():
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


def test_successful_call_reports_invocation_and_completion() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_identity",
        id_fields=("app_id", "session_id"),
        concerns=(concern,),
    )
    def compute(*, meta: Any, app_id: str, session_id: str) -> Any:
        return success(meta=meta, payload=app_id)

    meta = _meta()
    compute(meta=meta, app_id="APP1", session_id="")

    invocation = concern.invocations[0]
    assert invocation.component_id == "service_identity"
    assert invocation.api_name == "compute"
    assert invocation.trace_id == meta.trace_id
    assert invocation.references == {"app_id": "APP1"}
    completion = concern.completions[0]
    assert completion.success is True
    assert completion.errors == []
    assert completion.duration_ms >= 0


def test_failed_envelope_reports_error_summaries_and_categories() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_events", api_name="ingest", concerns=(concern,)
    )
    def ingest(*, meta: Any) -> Any:
        return failure(
            meta=meta,
            errors=[dependency_error("sink down", code="DEPENDENCY_FAILURE")],
        )

    ingest(meta=_meta())

    completion = concern.completions[0]
    assert completion.invocation.api_name == "ingest"
    assert completion.success is False
    assert completion.errors == ["DEPENDENCY_FAILURE: sink down"]
    assert completion.error_categories == ["dependency"]


def test_raised_exception_is_reported_then_propagated() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_events", concerns=(concern,))
    def explode(*, meta: Any) -> Any:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        explode(meta=_meta())

    assert concern.completions[0].errors == ["RuntimeError: boom"]
    assert concern.completions[0].error_categories == ["internal"]


def test_failing_concern_never_fails_the_call(
    caplog: pytest.LogCaptureFixture,
) -> None:
    logger = logging.getLogger("tally.test.public_api")

    @public_api_instrumented(
        component_id="service_identity",
        concerns=(_BrokenConcern(),),
        logger=logger,
    )
    def health(*, meta: Any) -> Any:
        return success(meta=meta, payload="ok")

    with caplog.at_level(logging.DEBUG, logger="tally.test.public_api"):
        result = health(meta=_meta())

    assert result.ok
    messages = [record.getMessage() for record in caplog.records]
    assert any("concern=_BrokenConcern" in message for message in messages)
    assert "Public API completion" in messages
