"""
Convert plan documents into span trees.

Example: a hash join over two scans becomes

  Seq Scan (users)        <- node spans, post-order
  Seq Scan (orders)
  Hash
  Hash Join
  CloudSQLQuery           <- synthesized query span, always last

Every span shares the document's trace id; each node span's parent is the span
of its plan ancestor, and the top plan node hangs off the query span.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ..config import DEFAULT_HOST_NAME, QUERY_SPAN_NAME
from ..plans.plan_parser import PlanDocument, PlanNode
from .attribute_extractor import AttributeExtractor, AttributeValue
from .id_generator import PlanIdGenerator
from .timestamps import query_span_times, reconcile_node_times, timestamp_to_ns

logger = logging.getLogger(__name__)


class SpanIdSource(Protocol):
    """Anything that hands out raw trace and span ids."""

    def new_trace_id(self) -> bytes: ...

    def new_span_id(self) -> bytes: ...


@dataclass(frozen=True)
class PlanSpan:
    """A finished span derived from a plan node or from the whole query."""

    trace_id: bytes
    span_id: bytes
    parent_span_id: bytes | None
    name: str
    start_time: int
    end_time: int
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.parent_span_id is None


@dataclass
class TraceBatch:
    """Spans of one plan document plus the identity of the emitting process."""

    spans: list[PlanSpan]
    host_name: str = DEFAULT_HOST_NAME
    pid: int = field(default_factory=os.getpid)

    @property
    def trace_id(self) -> bytes | None:
        return self.spans[0].trace_id if self.spans else None

    def span_names(self) -> list[str]:
        return [s.name for s in self.spans]


class SpanTreeBuilder:
    """Build the span tree for one plan document at a time."""

    def __init__(
        self,
        id_generator: SpanIdSource | None = None,
        max_attribute_length: int | None = None,
    ):
        self.id_generator = id_generator or PlanIdGenerator()
        self.extractor = AttributeExtractor(max_attribute_length)

    def build(self, document: PlanDocument) -> tuple[PlanSpan, list[PlanSpan]]:
        """Return (query_span, node_spans) with node spans in post-order."""
        trace_id = self.id_generator.new_trace_id()
        root_span_id = self.id_generator.new_span_id()
        anchor_ns = timestamp_to_ns(document.start_timestamp)

        node_spans: list[PlanSpan] = []
        self._build_node(document.plan, anchor_ns, trace_id, root_span_id, node_spans)

        start_ns, end_ns = query_span_times(document.start_timestamp, document.duration_seconds)
        root = PlanSpan(
            trace_id=trace_id,
            span_id=root_span_id,
            parent_span_id=None,
            name=QUERY_SPAN_NAME,
            start_time=start_ns,
            end_time=end_ns,
            attributes=self.extractor.document_attributes(document),
        )
        return root, node_spans

    def build_batch(
        self,
        document: PlanDocument,
        host_name: str = DEFAULT_HOST_NAME,
        pid: int | None = None,
    ) -> TraceBatch:
        """Build spans for a document in emission order: node spans, then the query span."""
        root, node_spans = self.build(document)
        batch = TraceBatch(
            spans=[*node_spans, root],
            host_name=host_name,
            pid=os.getpid() if pid is None else pid,
        )
        logger.debug(
            "Converted plan into %d spans (trace_id=%s)", len(batch.spans), root.trace_id.hex()
        )
        return batch

    def _build_node(
        self,
        node: PlanNode,
        anchor_ns: int,
        trace_id: bytes,
        parent_span_id: bytes,
        out: list[PlanSpan],
    ) -> int:
        """Append the node's subtree to out (post-order); return the node's start time."""
        span_id = self.id_generator.new_span_id()
        child_starts = [
            self._build_node(child, anchor_ns, trace_id, span_id, out) for child in node.children
        ]
        start_ns, end_ns = reconcile_node_times(
            anchor_ns,
            node.actual_startup_time_ms,
            node.actual_total_time_ms,
            child_starts,
        )
        out.append(
            PlanSpan(
                trace_id=trace_id,
                span_id=span_id,
                parent_span_id=parent_span_id,
                name=node.node_type,
                start_time=start_ns,
                end_time=end_ns,
                attributes=self.extractor.node_attributes(node),
            )
        )
        return start_ns
