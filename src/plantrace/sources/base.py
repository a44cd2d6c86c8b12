"""Plan source interface shared by the PostgreSQL and file sources."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class PlanRecord:
    """One pulled row: a counter and the plan document payload."""

    counter: Any
    payload: Any


class PlanSource(Protocol):
    """Supplies raw plan records on every poll tick."""

    def fetch(self) -> Iterable[PlanRecord | Exception]:
        """Yield the records of one tick.

        A row that cannot be read is yielded as a RecordScanError so the
        receiver can skip it and keep consuming the rest of the tick.
        """
        ...

    def close(self) -> None: ...
