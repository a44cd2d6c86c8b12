"""Plan-to-span conversion: ids, attributes, timestamps and the span tree builder."""

from .attribute_extractor import AttributeExtractor
from .id_generator import PlanIdGenerator
from .trace_generator import PlanSpan, SpanTreeBuilder, TraceBatch

__all__ = [
    "AttributeExtractor",
    "PlanIdGenerator",
    "PlanSpan",
    "SpanTreeBuilder",
    "TraceBatch",
]
