"""
Console exporter for debugging.

Prints converted plan spans to stdout for quick verification.
"""

from opentelemetry.sdk.trace.export import ConsoleSpanExporter


def create_console_exporter() -> ConsoleSpanExporter:
    """Create a span exporter that pretty-prints every span as JSON on stdout."""
    return ConsoleSpanExporter(service_name="plantrace")
