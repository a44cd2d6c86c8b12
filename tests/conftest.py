"""Shared fixtures: plan documents and deterministic id generators."""

import copy
import json
import random
from typing import Any

import pytest

from plantrace.generators.id_generator import PlanIdGenerator

EXAMPLE_DOCUMENT: dict[str, Any] = {
    "start timestamp": 1000.000,
    "duration": 0.050,
    "Query Text": "SELECT 1",
    "username": "svc",
    "session_username": "svc",
    "connection_id": 42,
    "database_name": "app",
    "Plan": {
        "Node Type": "Seq Scan",
        "Relation Name": "users",
        "Actual Startup Time": 0.1,
        "Actual Total Time": 40.0,
        "Actual Rows": 100,
    },
}

HASH_JOIN_PLAN: dict[str, Any] = {
    "Node Type": "Hash Join",
    "Actual Startup Time": 5.0,
    "Actual Total Time": 30.0,
    "Actual Rows": 10,
    "Plans": [
        {
            "Node Type": "Seq Scan",
            "Relation Name": "orders",
            "Actual Startup Time": 2.0,
            "Actual Total Time": 12.0,
            "Actual Rows": 500,
        },
        {
            "Node Type": "Hash",
            "Actual Startup Time": 8.0,
            "Actual Total Time": 8.0,
            "Actual Rows": 20,
            "Plans": [
                {
                    "Node Type": "Index Scan",
                    "Relation Name": "users",
                    "Operation": "Select",
                    "Actual Startup Time": 3.5,
                    "Actual Total Time": 7.5,
                    "Actual Rows": 20,
                }
            ],
        },
    ],
}


class SequentialIds:
    """Hands out predictable ids: trace ids 1, 2, ... and span ids 1, 2, ..."""

    def __init__(self) -> None:
        self.traces = 0
        self.spans = 0

    def new_trace_id(self) -> bytes:
        self.traces += 1
        return self.traces.to_bytes(16, "big")

    def new_span_id(self) -> bytes:
        self.spans += 1
        return self.spans.to_bytes(8, "big")


@pytest.fixture
def example_document() -> dict[str, Any]:
    return copy.deepcopy(EXAMPLE_DOCUMENT)


@pytest.fixture
def join_document() -> dict[str, Any]:
    doc = copy.deepcopy(EXAMPLE_DOCUMENT)
    doc["Query Text"] = "SELECT * FROM orders JOIN users USING (user_id)"
    doc["Plan"] = copy.deepcopy(HASH_JOIN_PLAN)
    return doc


@pytest.fixture
def seeded_ids() -> PlanIdGenerator:
    return PlanIdGenerator(random.Random(1234))


@pytest.fixture
def sequential_ids() -> SequentialIds:
    return SequentialIds()


def as_payload(document: dict[str, Any]) -> str:
    """Serialize a document the way the pull command returns it."""
    return json.dumps(document)
