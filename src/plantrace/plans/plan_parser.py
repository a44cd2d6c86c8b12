"""
Parse EXPLAIN ANALYZE plan documents into typed structures.

A pulled record carries a JSON document with query metadata at the top level
and the root operator under "Plan":

    {
      "start timestamp": 1000.0,      # epoch seconds, fractional
      "duration": 0.05,               # seconds
      "Query Text": "SELECT 1",
      "username": "svc",
      "session_username": "svc",
      "connection_id": 42,
      "database_name": "app",
      "Plan": {
        "Node Type": "Seq Scan",
        "Relation Name": "users",     # optional
        "Operation": "...",           # optional
        "Actual Startup Time": 0.1,   # ms relative to "start timestamp"
        "Actual Total Time": 40.0,    # ms relative to "start timestamp"
        "Actual Rows": 100,
        "Plans": [ ... ]              # optional child operators
      }
    }

Only the fields listed above are read. A missing or mistyped field raises
FieldShapeError naming its path, before any span is produced.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any

from ..errors import DocumentParseError, FieldShapeError

# Span trees are built recursively, so plan depth stays well under the
# interpreter recursion limit.
MAX_PLAN_DEPTH = 200


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise FieldShapeError(_join(path, key), "required field is missing")
    return data[key]


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _as_str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise FieldShapeError(path, f"expected string, got {type(value).__name__}")
    return value


def _as_number(value: Any, path: str) -> float:
    # bool is an int subclass; JSON true/false is never a valid number here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldShapeError(path, f"expected number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError:
        raise FieldShapeError(path, "number out of range") from None
    if not math.isfinite(number):
        raise FieldShapeError(path, f"expected finite number, got {value}")
    return number


def _as_offset(value: Any, path: str) -> float:
    # Plan timings are measured from query start and never precede it.
    number = _as_number(value, path)
    if number < 0:
        raise FieldShapeError(path, f"expected non-negative offset, got {number:g}")
    return number


def _optional_str(data: dict[str, Any], key: str, path: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return _as_str(value, _join(path, key))


@dataclass(frozen=True)
class PlanNode:
    """One operator of an execution plan with its timing and row count."""

    node_type: str
    actual_startup_time_ms: float
    actual_total_time_ms: float
    actual_rows: float
    operation: str | None = None
    relation_name: str | None = None
    children: tuple["PlanNode", ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data: Any, path: str = "Plan", depth: int = 1) -> "PlanNode":
        """Parse a plan node (and its subtree) from decoded JSON."""
        if depth > MAX_PLAN_DEPTH:
            raise FieldShapeError(path, f"plan nested deeper than {MAX_PLAN_DEPTH} levels")
        if not isinstance(data, dict):
            raise FieldShapeError(path, f"expected object, got {type(data).__name__}")

        raw_children = data.get("Plans")
        children: list[PlanNode] = []
        if raw_children is not None:
            if not isinstance(raw_children, list):
                raise FieldShapeError(
                    _join(path, "Plans"), f"expected list, got {type(raw_children).__name__}"
                )
            for i, child in enumerate(raw_children):
                children.append(cls.from_json(child, f"{path}.Plans[{i}]", depth + 1))

        return cls(
            node_type=_as_str(_require(data, "Node Type", path), _join(path, "Node Type")),
            actual_startup_time_ms=_as_offset(
                _require(data, "Actual Startup Time", path), _join(path, "Actual Startup Time")
            ),
            actual_total_time_ms=_as_offset(
                _require(data, "Actual Total Time", path), _join(path, "Actual Total Time")
            ),
            actual_rows=_as_number(
                _require(data, "Actual Rows", path), _join(path, "Actual Rows")
            ),
            operation=_optional_str(data, "Operation", path),
            relation_name=_optional_str(data, "Relation Name", path),
            children=tuple(children),
        )

    def count(self) -> int:
        """Number of nodes in this subtree."""
        return 1 + sum(child.count() for child in self.children)


@dataclass(frozen=True)
class PlanDocument:
    """Top-level query metadata plus the root plan operator."""

    start_timestamp: float
    duration_seconds: float
    query_text: str
    username: str
    session_username: str
    connection_id: float
    database_name: str
    plan: PlanNode

    @classmethod
    def from_json(cls, data: Any) -> "PlanDocument":
        """Parse a plan document from decoded JSON."""
        if not isinstance(data, dict):
            raise FieldShapeError("$", f"expected object, got {type(data).__name__}")
        return cls(
            start_timestamp=_as_number(
                _require(data, "start timestamp", ""), "start timestamp"
            ),
            duration_seconds=_as_number(_require(data, "duration", ""), "duration"),
            query_text=_as_str(_require(data, "Query Text", ""), "Query Text"),
            username=_as_str(_require(data, "username", ""), "username"),
            session_username=_as_str(
                _require(data, "session_username", ""), "session_username"
            ),
            connection_id=_as_number(_require(data, "connection_id", ""), "connection_id"),
            database_name=_as_str(_require(data, "database_name", ""), "database_name"),
            plan=PlanNode.from_json(_require(data, "Plan", "")),
        )


def decode_payload(payload: Any) -> Any:
    """Decode a record payload into JSON values.

    psycopg already decodes json/jsonb columns, so mappings pass through; text
    and bytes are parsed with json.loads.
    """
    if isinstance(payload, (dict, list)):
        return payload
    if isinstance(payload, (bytes, bytearray, memoryview)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"Plan payload is not UTF-8: {e}") from e
    if not isinstance(payload, str):
        raise DocumentParseError(f"Unsupported plan payload type: {type(payload).__name__}")
    try:
        return json.loads(payload)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError is a ValueError, as is the int digit limit.
        raise DocumentParseError(f"Unmarshal execution plan failed: {e}") from e


def parse_plan_document(payload: Any) -> PlanDocument:
    """Decode and validate one record payload."""
    data = decode_payload(payload)
    try:
        return PlanDocument.from_json(data)
    except RecursionError:
        raise FieldShapeError("Plan", "plan nested too deeply") from None
