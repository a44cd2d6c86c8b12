"""Tests for handing plan spans to OpenTelemetry exporters."""

import pytest
from opentelemetry.exporter.otlp.proto.http import trace_exporter
from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind

from conftest import SequentialIds
from plantrace.errors import SinkError
from plantrace.exporters import create_otlp_trace_exporter
from plantrace.generators.trace_generator import PlanSpan, SpanTreeBuilder, TraceBatch
from plantrace.plans import PlanDocument
from plantrace.sinks import ExporterSink


@pytest.fixture
def batch(join_document) -> TraceBatch:
    builder = SpanTreeBuilder(id_generator=SequentialIds())
    return builder.build_batch(PlanDocument.from_json(join_document), host_name="db-1", pid=77)


def test_spans_are_exported_with_ids_and_times(batch) -> None:
    exporter = InMemorySpanExporter()
    ExporterSink(exporter, service_name="plans").consume(batch)
    exported = exporter.get_finished_spans()
    assert [s.name for s in exported] == batch.span_names()
    for plan_span, span in zip(batch.spans, exported):
        assert span.context.trace_id == int.from_bytes(plan_span.trace_id, "big")
        assert span.context.span_id == int.from_bytes(plan_span.span_id, "big")
        assert span.start_time == plan_span.start_time
        assert span.end_time == plan_span.end_time
        assert dict(span.attributes) == dict(plan_span.attributes)


def test_parent_links_and_kinds(batch) -> None:
    exporter = InMemorySpanExporter()
    ExporterSink(exporter).consume(batch)
    exported = exporter.get_finished_spans()
    root = exported[-1]
    assert root.parent is None
    assert root.kind == SpanKind.SERVER
    hash_join = exported[-2]
    assert hash_join.kind == SpanKind.INTERNAL
    assert hash_join.parent.span_id == root.context.span_id


def test_resource_carries_process_identity(batch) -> None:
    exporter = InMemorySpanExporter()
    ExporterSink(exporter, service_name="plans").consume(batch)
    resource = exporter.get_finished_spans()[0].resource.attributes
    assert resource["service.name"] == "plans"
    assert resource["host.name"] == "db-1"
    assert resource["process.pid"] == 77


def test_bad_span_is_reported_but_rest_exported(batch) -> None:
    """Export is best effort: one broken span does not drop the others."""
    good = batch.spans[0]
    broken = PlanSpan(
        trace_id=good.trace_id,
        span_id=b"\x00" * 8,
        parent_span_id=good.parent_span_id,
        name="broken",
        start_time=good.start_time,
        end_time=good.end_time,
    )
    batch.spans.insert(0, broken)
    exporter = InMemorySpanExporter()
    with pytest.raises(SinkError) as exc_info:
        ExporterSink(exporter).consume(batch)
    assert len(exc_info.value.causes) == 1
    assert len(exporter.get_finished_spans()) == len(batch.spans) - 1


def test_exporter_failure_raises_sink_error(batch) -> None:
    class FailingExporter(InMemorySpanExporter):
        def export(self, spans):
            return SpanExportResult.FAILURE

    with pytest.raises(SinkError, match="FAILURE"):
        ExporterSink(FailingExporter()).consume(batch)


def test_shutdown_forwards_to_exporter() -> None:
    exporter = InMemorySpanExporter()
    ExporterSink(exporter).shutdown()
    assert exporter.export([]) == SpanExportResult.FAILURE


@pytest.mark.parametrize(
    "endpoint", ["http://collector:4318", "http://collector:4318/", "http://collector:4318/v1/traces"]
)
def test_otlp_http_endpoint_gets_traces_path(monkeypatch: pytest.MonkeyPatch, endpoint) -> None:
    created = []
    monkeypatch.setattr(
        trace_exporter, "OTLPSpanExporter", lambda **kwargs: created.append(kwargs) or kwargs
    )
    create_otlp_trace_exporter(endpoint, protocol="http")
    assert created == [{"endpoint": "http://collector:4318/v1/traces"}]


def test_otlp_rejects_unknown_protocol() -> None:
    with pytest.raises(ValueError, match="Unsupported OTLP protocol"):
        create_otlp_trace_exporter("http://collector:4318", protocol="thrift")
