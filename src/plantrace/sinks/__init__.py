"""Trace sinks: where converted plan batches are handed off."""

from .exporter_sink import ExporterSink, TraceSink, to_readable_span

__all__ = [
    "ExporterSink",
    "TraceSink",
    "to_readable_span",
]
