"""Tests for plan timing reconciliation."""

from plantrace.generators.timestamps import (
    MIN_DURATION_NS,
    ms_offset_to_ns,
    query_span_times,
    reconcile_node_times,
    timestamp_to_ns,
)

T0 = 1_000 * 1_000_000_000


def test_timestamp_to_ns_keeps_fraction() -> None:
    assert timestamp_to_ns(1000.0) == T0
    assert timestamp_to_ns(1000.5) == T0 + 500_000_000


def test_ms_offset_to_ns() -> None:
    assert ms_offset_to_ns(40.0) == 40_000_000
    assert ms_offset_to_ns(0.1) == 100_000


def test_leaf_node_uses_raw_offsets() -> None:
    start, end = reconcile_node_times(T0, 0.1, 40.0)
    assert start == T0 + 100_000
    assert end == T0 + 40_000_000


def test_start_is_pulled_down_to_earliest_child() -> None:
    """A node reporting startup at 5ms with a child starting at 2ms starts at 2ms."""
    child_start = T0 + ms_offset_to_ns(2.0)
    start, end = reconcile_node_times(T0, 5.0, 30.0, [T0 + ms_offset_to_ns(4.0), child_start])
    assert start == child_start
    assert end == T0 + 30_000_000


def test_later_children_do_not_move_start() -> None:
    start, _ = reconcile_node_times(T0, 1.0, 9.0, [T0 + ms_offset_to_ns(3.0)])
    assert start == T0 + 1_000_000


def test_zero_duration_gets_one_unit() -> None:
    start, end = reconcile_node_times(T0, 8.0, 8.0)
    assert end - start == MIN_DURATION_NS


def test_end_before_start_is_clamped() -> None:
    start, end = reconcile_node_times(T0, 8.0, 6.0)
    assert end == start + MIN_DURATION_NS


def test_query_span_times_cover_duration() -> None:
    start, end = query_span_times(1000.0, 0.25)
    assert start == T0
    assert end == T0 + 250_000_000


def test_query_span_zero_duration_is_positive() -> None:
    start, end = query_span_times(1000.0, 0.0)
    assert end == start + MIN_DURATION_NS
