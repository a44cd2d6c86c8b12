"""
Trace sink that forwards plan spans to an OpenTelemetry SpanExporter.

Plan spans already carry their final ids and timestamps, so they bypass the
tracer API and are handed to the exporter as ReadableSpans directly. Export is
best effort: a span that cannot be converted is reported but does not stop the
rest of the batch from being exported.
"""

import logging
from typing import Protocol

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from opentelemetry.sdk.util.instrumentation import InstrumentationScope
from opentelemetry.trace import SpanContext, SpanKind, TraceFlags

from .. import __version__
from ..config import DEFAULT_SERVICE_NAME
from ..errors import SinkError
from ..generators.id_generator import SPAN_ID_BYTES, TRACE_ID_BYTES
from ..generators.trace_generator import PlanSpan, TraceBatch

logger = logging.getLogger(__name__)

_SCOPE = InstrumentationScope("plantrace.receiver", __version__)


class TraceSink(Protocol):
    """Pipeline stage that accepts converted batches; raises SinkError on failure."""

    def consume(self, batch: TraceBatch) -> None: ...

    def shutdown(self) -> None: ...


def _span_context(trace_id: bytes, span_id: bytes) -> SpanContext:
    if len(trace_id) != TRACE_ID_BYTES:
        raise ValueError(f"trace id must be {TRACE_ID_BYTES} bytes, got {len(trace_id)}")
    if len(span_id) != SPAN_ID_BYTES:
        raise ValueError(f"span id must be {SPAN_ID_BYTES} bytes, got {len(span_id)}")
    context = SpanContext(
        trace_id=int.from_bytes(trace_id, "big"),
        span_id=int.from_bytes(span_id, "big"),
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )
    if not context.is_valid:
        raise ValueError("all-zero trace or span id")
    return context


def to_readable_span(span: PlanSpan, resource: Resource) -> ReadableSpan:
    """Convert a plan span to the SDK span type exporters consume."""
    if span.end_time <= span.start_time:
        raise ValueError(f"span {span.name!r} has non-positive duration")
    parent = (
        _span_context(span.trace_id, span.parent_span_id)
        if span.parent_span_id is not None
        else None
    )
    return ReadableSpan(
        name=span.name,
        context=_span_context(span.trace_id, span.span_id),
        parent=parent,
        resource=resource,
        attributes=dict(span.attributes),
        kind=SpanKind.SERVER if span.is_root else SpanKind.INTERNAL,
        start_time=span.start_time,
        end_time=span.end_time,
        instrumentation_scope=_SCOPE,
    )


class ExporterSink:
    """Adapt TraceBatch hand-offs to a SpanExporter."""

    def __init__(self, exporter: SpanExporter, service_name: str = DEFAULT_SERVICE_NAME):
        self.exporter = exporter
        self.service_name = service_name
        self._resources: dict[tuple[str, int], Resource] = {}

    def _resource(self, batch: TraceBatch) -> Resource:
        key = (batch.host_name, batch.pid)
        if key not in self._resources:
            self._resources[key] = Resource.create(
                {
                    "service.name": self.service_name,
                    "host.name": batch.host_name,
                    "process.pid": batch.pid,
                }
            )
        return self._resources[key]

    def consume(self, batch: TraceBatch) -> None:
        """Export every convertible span; raise one SinkError aggregating all failures."""
        resource = self._resource(batch)
        errors: list[Exception] = []
        good_spans: list[ReadableSpan] = []
        for span in batch.spans:
            try:
                good_spans.append(to_readable_span(span, resource))
            except ValueError as e:
                errors.append(e)

        if good_spans:
            try:
                result = self.exporter.export(good_spans)
            except Exception as e:
                errors.append(e)
            else:
                if result is not SpanExportResult.SUCCESS:
                    errors.append(RuntimeError(f"exporter returned {result.name}"))

        trace_id = batch.trace_id.hex() if batch.trace_id else "-"
        logger.info(
            "spans: %d\tgood spans: %d\ttrace_id: %s", len(batch.spans), len(good_spans), trace_id
        )
        if errors:
            raise SinkError(f"Exporting trace {trace_id} failed", errors)

    def shutdown(self) -> None:
        self.exporter.shutdown()
