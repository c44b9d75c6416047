"""Instrumentation decorator for public service API methods.

``public_api_instrumented`` wraps a service method and dispatches invocation
and completion events to a set of concerns. The logging concern writes
structured start/finish records; the tracing and metrics concerns report to
the OpenTelemetry API, which stays a no-op until an SDK provider is installed
by the hosting process.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace import Span, Status, StatusCode

from . import fields
from .context import log_context

METER_NAME = "tally.public_api"
TRACER_NAME = "tally.public_api"
METRIC_CALLS_TOTAL = "tally_public_api_calls_total"
METRIC_DURATION_MS = "tally_public_api_duration_ms"
METRIC_ERRORS_TOTAL = "tally_public_api_errors_total"


@dataclass(frozen=True)
class InvocationContext:
    """Metadata describing one public API invocation."""

    component_id: str
    api_name: str
    trace_id: str | None
    envelope_id: str | None
    principal: str | None
    references: Mapping[str, str]


@dataclass(frozen=True)
class CompletionContext:
    """Metadata describing one completed public API invocation."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]


class PublicApiInstrumentationConcern(Protocol):
    """Hook contract for one instrumentation concern."""

    def on_invocation(self, context: InvocationContext) -> None:
        """Handle the invocation-start event."""

    def on_completion(self, context: CompletionContext) -> None:
        """Handle the completion event."""


class PublicApiLoggingConcern:
    """Structured invocation/completion logging."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(_invocation_fields(context)):
            self._logger.debug("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        payload = _invocation_fields(context.invocation)
        payload.update(
            {
                fields.EVENT: fields.PUBLIC_API_COMPLETION_EVENT,
                fields.SUCCESS: context.success,
                fields.DURATION_MS: context.duration_ms,
                fields.ERRORS: context.errors,
            }
        )
        with log_context(payload):
            if context.success:
                self._logger.info("Public API completion")
            else:
                self._logger.warning("Public API completion")


class PublicApiTracingConcern:
    """One OpenTelemetry span per public API invocation."""

    def __init__(self, *, tracer: otel_trace.Tracer) -> None:
        self._tracer = tracer
        self._active: ContextVar[tuple[Any, ...]] = ContextVar(
            "tally_public_api_spans", default=()
        )

    def on_invocation(self, context: InvocationContext) -> None:
        manager = self._tracer.start_as_current_span(
            f"public_api.{context.component_id}.{context.api_name}"
        )
        span: Span = manager.__enter__()
        span.set_attribute(fields.COMPONENT_ID, context.component_id)
        span.set_attribute(fields.API_NAME, context.api_name)
        if context.trace_id is not None:
            span.set_attribute(fields.TRACE_ID, context.trace_id)
        for key, value in context.references.items():
            span.set_attribute(f"reference.{key}", value)
        self._active.set((*self._active.get(), (manager, span)))

    def on_completion(self, context: CompletionContext) -> None:
        active = self._active.get()
        if not active:
            return
        manager, span = active[-1]
        self._active.set(active[:-1])

        span.set_attribute(fields.SUCCESS, context.success)
        span.set_attribute(fields.DURATION_MS, context.duration_ms)
        if not context.success:
            span.set_status(Status(StatusCode.ERROR, "; ".join(context.errors[:3])))
        manager.__exit__(None, None, None)


class PublicApiMetricsConcern:
    """Call, latency and error counters per component and method."""

    def __init__(self, *, meter: otel_metrics.Meter) -> None:
        self._calls_total = meter.create_counter(
            name=METRIC_CALLS_TOTAL,
            description="Count of public API invocations by component/method/outcome.",
            unit="1",
        )
        self._duration_ms = meter.create_histogram(
            name=METRIC_DURATION_MS,
            description="Public API invocation latency in milliseconds.",
            unit="ms",
        )
        self._errors_total = meter.create_counter(
            name=METRIC_ERRORS_TOTAL,
            description="Count of public API failures by error category.",
            unit="1",
        )

    def on_invocation(self, context: InvocationContext) -> None:
        del context

    def on_completion(self, context: CompletionContext) -> None:
        attrs = {
            fields.COMPONENT_ID: context.invocation.component_id,
            fields.API_NAME: context.invocation.api_name,
            fields.OUTCOME: "success" if context.success else "failure",
        }
        self._calls_total.add(1, attributes=attrs)
        self._duration_ms.record(context.duration_ms, attributes=attrs)
        if context.success:
            return
        for category in context.error_categories or ["unknown"]:
            self._errors_total.add(
                1,
                attributes={
                    fields.COMPONENT_ID: context.invocation.component_id,
                    fields.API_NAME: context.invocation.api_name,
                    fields.ERROR_CATEGORY: category,
                },
            )


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate one keyword-only public API method with instrumentation.

    ``id_fields`` names keyword arguments copied into log context and span
    attributes. The wrapped method is expected to take ``meta`` and return an
    envelope-like object exposing ``ok`` and ``errors``.
    """
    resolved: tuple[PublicApiInstrumentationConcern, ...] = (
        *(concerns or ()),
        _default_tracing_concern(),
        _default_metrics_concern(),
    )
    if logger is not None:
        resolved = (PublicApiLoggingConcern(logger=logger), *resolved)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            meta = kwargs.get("meta")
            invocation = InvocationContext(
                component_id=component_id,
                api_name=method_name,
                trace_id=_attr_or_none(meta, "trace_id"),
                envelope_id=_attr_or_none(meta, "envelope_id"),
                principal=_attr_or_none(meta, "principal"),
                references={
                    name: str(kwargs[name])
                    for name in id_fields
                    if kwargs.get(name) not in (None, "")
                },
            )
            _dispatch(resolved, "on_invocation", invocation, logger=logger)

            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _dispatch(
                    resolved,
                    "on_completion",
                    CompletionContext(
                        invocation=invocation,
                        success=False,
                        duration_ms=_elapsed_ms(started),
                        errors=[f"{type(exc).__name__}: {exc}"],
                        error_categories=["internal"],
                    ),
                    logger=logger,
                )
                raise

            errors = _error_summaries(result)
            ok = getattr(result, "ok", None)
            _dispatch(
                resolved,
                "on_completion",
                CompletionContext(
                    invocation=invocation,
                    success=ok if isinstance(ok, bool) else not errors,
                    duration_ms=_elapsed_ms(started),
                    errors=errors,
                    error_categories=_error_categories(result),
                ),
                logger=logger,
            )
            return result

        return wrapper

    return decorator


def _dispatch(
    concerns: Sequence[PublicApiInstrumentationConcern],
    hook: str,
    context: InvocationContext | CompletionContext,
    *,
    logger: Any | None,
) -> None:
    """Run one hook on every concern; a failing concern never fails the call."""
    for concern in concerns:
        try:
            getattr(concern, hook)(context)
        except Exception as exc:  # noqa: BLE001
            if logger is not None:
                logger.warning(
                    "Public API instrumentation concern failed: concern=%s stage=%s",
                    type(concern).__name__,
                    hook,
                    exc_info=exc,
                )


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _attr_or_none(obj: object | None, name: str) -> str | None:
    value = getattr(obj, name, None) if obj is not None else None
    if value in (None, ""):
        return None
    return str(value)


def _error_summaries(result: object) -> list[str]:
    """Return one-line ``code: message`` summaries safe for logs."""
    errors = getattr(result, "errors", None)
    if not isinstance(errors, list):
        return []
    summaries: list[str] = []
    for item in errors:
        code = getattr(item, "code", None)
        message = getattr(item, "message", None)
        if message in (None, ""):
            continue
        summaries.append(str(message) if code in (None, "") else f"{code}: {message}")
    return summaries


def _error_categories(result: object) -> list[str]:
    errors = getattr(result, "errors", None)
    if not isinstance(errors, list):
        return []
    categories: list[str] = []
    for item in errors:
        raw = getattr(item, "category", None)
        category = getattr(raw, "value", raw)
        if category not in (None, ""):
            categories.append(str(category))
    return categories


def _invocation_fields(context: InvocationContext) -> dict[str, object]:
    return {
        fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
        fields.COMPONENT_ID: context.component_id,
        fields.API_NAME: context.api_name,
        fields.TRACE_ID: context.trace_id,
        fields.ENVELOPE_ID: context.envelope_id,
        fields.PRINCIPAL: context.principal,
        **context.references,
    }


@lru_cache(maxsize=1)
def _default_tracing_concern() -> PublicApiTracingConcern:
    return PublicApiTracingConcern(tracer=otel_trace.get_tracer(TRACER_NAME))


@lru_cache(maxsize=1)
def _default_metrics_concern() -> PublicApiMetricsConcern:
    return PublicApiMetricsConcern(meter=otel_metrics.get_meter(METER_NAME))
