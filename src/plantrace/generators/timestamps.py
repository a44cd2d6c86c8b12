"""
Turn plan timing offsets into absolute span timestamps.

EXPLAIN ANALYZE reports "Actual Startup Time" and "Actual Total Time" in
milliseconds relative to the query start. The startup time marks when the
operator itself was ready to produce rows, which is after its children have
started, so a node's span start is pulled down to the earliest start found in
its subtree. All times are integer nanoseconds since the epoch, the unit the
OpenTelemetry SDK uses for span start/end.
"""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MILLI = 1_000_000
# Smallest representable step; added to zero-length spans.
MIN_DURATION_NS = 1


def timestamp_to_ns(timestamp: float) -> int:
    """Convert fractional epoch seconds to nanoseconds.

    Whole seconds and the fraction are converted separately so large epoch
    values keep their sub-microsecond part.
    """
    seconds = int(timestamp)
    nanos = int((timestamp - seconds) * NANOS_PER_SECOND)
    return seconds * NANOS_PER_SECOND + nanos


def ms_offset_to_ns(offset_ms: float) -> int:
    """Convert a millisecond offset to whole nanoseconds (truncated toward zero)."""
    return int(offset_ms * NANOS_PER_MILLI)


def ensure_positive_duration(start_ns: int, end_ns: int) -> int:
    """Return an end time strictly after start_ns."""
    if end_ns > start_ns:
        return end_ns
    if end_ns < start_ns:
        logger.debug("Span end %d precedes start %d; clamping", end_ns, start_ns)
    return start_ns + MIN_DURATION_NS


def reconcile_node_times(
    anchor_ns: int,
    startup_ms: float,
    total_ms: float,
    child_starts_ns: Iterable[int] = (),
) -> tuple[int, int]:
    """Return (start_ns, end_ns) for one plan node.

    child_starts_ns are the already reconciled starts of the node's children,
    so callers must resolve the subtree bottom-up.
    """
    start_ns = anchor_ns + ms_offset_to_ns(startup_ms)
    for child_start in child_starts_ns:
        if child_start < start_ns:
            start_ns = child_start
    end_ns = anchor_ns + ms_offset_to_ns(total_ms)
    return start_ns, ensure_positive_duration(start_ns, end_ns)


def query_span_times(start_timestamp: float, duration_seconds: float) -> tuple[int, int]:
    """Return (start_ns, end_ns) for the synthesized query span."""
    start_ns = timestamp_to_ns(start_timestamp)
    end_ns = timestamp_to_ns(start_timestamp + duration_seconds)
    return start_ns, ensure_positive_duration(start_ns, end_ns)
