"""Span exporters the trace sink can forward converted plans to."""

from .console_exporter import create_console_exporter
from .file_exporter import FilePlanSpanExporter
from .otlp_exporter import OTLP_PROTOCOLS, create_otlp_trace_exporter

__all__ = [
    "OTLP_PROTOCOLS",
    "create_otlp_trace_exporter",
    "create_console_exporter",
    "FilePlanSpanExporter",
]
