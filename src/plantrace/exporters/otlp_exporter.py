"""
OTLP span exporter factory for the receiver's default output.
"""

from opentelemetry.sdk.trace.export import SpanExporter

OTLP_PROTOCOLS = ("http", "grpc")


def create_otlp_trace_exporter(endpoint: str, protocol: str = "http") -> SpanExporter:
    """Create an OTLP exporter; HTTP endpoints get /v1/traces appended when missing.

    Only the chosen transport package is imported.
    """
    if protocol not in OTLP_PROTOCOLS:
        raise ValueError(f"Unsupported OTLP protocol: {protocol}")
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        # gRPC takes host:port.
        return OTLPSpanExporter(endpoint=endpoint.split("://", 1)[-1])

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
        OTLPSpanExporter,
    )

    traces_endpoint = endpoint.rstrip("/")
    if not traces_endpoint.endswith("/v1/traces"):
        traces_endpoint = f"{traces_endpoint}/v1/traces"
    return OTLPSpanExporter(endpoint=traces_endpoint)
