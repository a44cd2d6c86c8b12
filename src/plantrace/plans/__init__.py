"""Typed plan document model and parser."""

from .plan_parser import PlanDocument, PlanNode, decode_payload, parse_plan_document

__all__ = [
    "PlanDocument",
    "PlanNode",
    "decode_payload",
    "parse_plan_document",
]
