"""Plan sources: where plan documents come from on each poll tick."""

from .base import PlanRecord, PlanSource
from .file_source import FilePlanSource
from .postgres_source import PostgresPlanSource

__all__ = [
    "FilePlanSource",
    "PlanRecord",
    "PlanSource",
    "PostgresPlanSource",
]
