"""
Poll-tick driver: pull plan records, convert them and hand batches to the sink.

The receiver owns:
- A background thread that runs one tick every pull interval
- Per-record error isolation (a bad record never stops the rest of the tick)
- Tick coalescing: ticks falling due while a tick is still running are skipped

SourceUnavailableError, or an error outside the plan trace taxonomy, stops the
loop; everything else is logged and the affected record (or, for a failed pull
command, the tick) is dropped.
"""

import logging
import os
import threading
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import DEFAULT_HOST_NAME
from .errors import (
    DocumentParseError,
    FieldShapeError,
    PlanTraceError,
    PullCommandError,
    SinkError,
    SourceUnavailableError,
)
from .generators.trace_generator import SpanTreeBuilder, TraceBatch
from .plans.plan_parser import parse_plan_document
from .sinks.exporter_sink import TraceSink
from .sources.base import PlanRecord, PlanSource

logger = logging.getLogger(__name__)


@dataclass
class TickSummary:
    """Outcome of one poll tick."""

    records: int = 0
    batches: int = 0
    spans: int = 0
    failures: Counter = field(default_factory=Counter)
    trace_ids: list[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def failed(self) -> int:
        return sum(self.failures.values())

    def record_failure(self, error: Exception) -> None:
        self.failures[type(error).__name__] += 1


class PlanReceiver:
    """Drive plan conversion from a PlanSource into a TraceSink."""

    def __init__(
        self,
        source: PlanSource,
        sink: TraceSink,
        builder: SpanTreeBuilder | None = None,
        pull_interval: float = 10.0,
        host_name: str = DEFAULT_HOST_NAME,
        pid: int | None = None,
        on_tick: Callable[[TickSummary], None] | None = None,
    ):
        self.source = source
        self.sink = sink
        self.builder = builder or SpanTreeBuilder()
        self.pull_interval = pull_interval
        self.host_name = host_name
        self.pid = os.getpid() if pid is None else pid
        self.on_tick = on_tick
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.fatal_error: Exception | None = None

    def convert_record(self, record: PlanRecord) -> TraceBatch:
        """Parse and convert one record. Raises DocumentParseError or FieldShapeError."""
        document = parse_plan_document(record.payload)
        return self.builder.build_batch(document, host_name=self.host_name, pid=self.pid)

    def _process_record(self, record: PlanRecord, summary: TickSummary) -> None:
        try:
            batch = self.convert_record(record)
        except DocumentParseError as e:
            logger.warning("Skipping record %s: %s", record.counter, e)
            summary.record_failure(e)
            return
        except FieldShapeError as e:
            logger.warning("Skipping record %s: malformed plan document: %s", record.counter, e)
            summary.record_failure(e)
            return

        summary.batches += 1
        summary.spans += len(batch.spans)
        if batch.trace_id is not None:
            summary.trace_ids.append(batch.trace_id.hex())
        try:
            self.sink.consume(batch)
        except SinkError as e:
            logger.error("Sink rejected record %s: %s", record.counter, e)
            summary.record_failure(e)

    def process_tick(self) -> TickSummary:
        """Run one tick: fetch every record and convert them one at a time.

        A tick that starts while another is still in flight is skipped.
        Raises SourceUnavailableError when the source is gone.
        """
        summary = TickSummary()
        if not self._tick_lock.acquire(blocking=False):
            summary.skipped = True
            logger.debug("Previous tick still running; skipping")
            return summary
        try:
            for item in self.source.fetch():
                summary.records += 1
                if isinstance(item, Exception):
                    logger.warning("Skipping record: %s", item)
                    summary.record_failure(item)
                    continue
                logger.debug("Pulled plan record %s", item.counter)
                self._process_record(item, summary)
        except PullCommandError as e:
            logger.error("Skipping tick: %s", e)
            summary.record_failure(e)
        finally:
            self._tick_lock.release()

        if summary.records:
            logger.info(
                "Tick done: %d record(s), %d batch(es), %d span(s), %d failure(s)",
                summary.records,
                summary.batches,
                summary.spans,
                summary.failed,
            )
        if self.on_tick is not None:
            self.on_tick(summary)
        return summary

    def run_once(self) -> TickSummary:
        """Run a single tick in the calling thread."""
        return self.process_tick()

    def _loop(self) -> None:
        next_tick = time.monotonic() + self.pull_interval
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            try:
                self.process_tick()
            except SourceUnavailableError as e:
                logger.error("Plan source unavailable, stopping receiver: %s", e)
                self.fatal_error = e
                self._stop_event.set()
                return
            except PlanTraceError as e:
                logger.error("Tick failed: %s", e)
            except Exception as e:
                logger.exception("Unexpected error in tick, stopping receiver")
                self.fatal_error = e
                self._stop_event.set()
                return

            next_tick += self.pull_interval
            now = time.monotonic()
            if next_tick <= now:
                missed = int((now - next_tick) // self.pull_interval) + 1
                logger.warning("Tick overran the pull interval; skipping %d tick(s)", missed)
                next_tick += missed * self.pull_interval

    def start(self) -> None:
        """Start polling on a daemon thread; the first tick fires after one interval."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.fatal_error = None
        self._thread = threading.Thread(target=self._loop, name="plantrace-receiver", daemon=True)
        self._thread.start()
        logger.info("Receiver started (pull interval %.3fs)", self.pull_interval)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the loop stops; return True if it has stopped."""
        return self._stop_event.wait(timeout)

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling, wait for the in-flight tick and close the source and sink."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        self.source.close()
        self.sink.shutdown()
        logger.info("Receiver stopped")
