"""
Write exported plan spans to a JSONL file for offline inspection.

One JSON object per span, ids rendered as lower-case hex and timestamps as
integer nanoseconds, so the output can be diffed against the pulled plans.
"""

import json
import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

logger = logging.getLogger(__name__)


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    """Flatten a ReadableSpan into a JSON-friendly mapping."""
    return {
        "name": span.name,
        "trace_id": format(span.context.trace_id, "032x"),
        "span_id": format(span.context.span_id, "016x"),
        "parent_span_id": format(span.parent.span_id, "016x") if span.parent else None,
        "start_time": span.start_time,
        "end_time": span.end_time,
        "kind": span.kind.name if span.kind else "INTERNAL",
        "attributes": dict(span.attributes) if span.attributes else {},
        "resource": dict(span.resource.attributes) if span.resource else {},
    }


class FilePlanSpanExporter(SpanExporter):
    """Append spans to a JSONL file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.append = append
        self._lock = threading.Lock()
        self._stopped = False
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        if not append and self.output_path.exists():
            self.output_path.unlink()

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        if self._stopped:
            return SpanExportResult.FAILURE
        lines = [json.dumps(span_to_dict(span), default=str) for span in spans]
        try:
            with self._lock, open(self.output_path, "a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line + "\n")
        except OSError as e:
            logger.error("Writing spans to %s failed: %s", self.output_path, e)
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._stopped = True

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
