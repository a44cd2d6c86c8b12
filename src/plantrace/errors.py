"""
Error taxonomy for the plan trace receiver.

Every failure below SourceUnavailableError is recoverable at record (or tick)
granularity: the receiver logs it, drops the affected record and carries on.
"""

from typing import Any


class PlanTraceError(Exception):
    """Base class for all receiver errors."""

    pass


class ConfigError(PlanTraceError):
    """Raised when the receiver configuration is missing or invalid."""

    pass


class SourceUnavailableError(PlanTraceError):
    """The plan source cannot be reached. Fatal for the poll loop."""

    pass


class PullCommandError(PlanTraceError):
    """The pull command failed but the connection is still usable; the tick is skipped."""

    pass


class RecordScanError(PlanTraceError):
    """One row returned by the pull command could not be read."""

    def __init__(self, message: str, counter: Any = None):
        super().__init__(message)
        self.counter = counter


class DocumentParseError(PlanTraceError):
    """The record payload is not well-formed JSON."""

    pass


class FieldShapeError(PlanTraceError):
    """A required field is missing or has an unexpected type.

    ``path`` is the location of the offending field inside the plan document,
    e.g. ``Plan.Plans[1].Actual Rows``.
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class SinkError(PlanTraceError):
    """The trace sink failed to accept (part of) a batch; aggregates every cause."""

    def __init__(self, message: str, causes: list[Exception] | None = None):
        self.causes = list(causes or [])
        if self.causes:
            details = "; ".join(str(c) for c in self.causes)
            message = f"{message} ({len(self.causes)} error(s): {details})"
        super().__init__(message)
