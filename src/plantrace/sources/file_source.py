"""
Replay plan documents from a JSONL file.

Each non-blank line holds one plan document, exactly as the pull command would
return it. Useful for converting captured plans offline and for tests.
"""

from collections.abc import Iterator
from pathlib import Path

from ..errors import SourceUnavailableError
from .base import PlanRecord


class FilePlanSource:
    """Plan source backed by a JSONL file; every fetch re-reads the whole file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def fetch(self) -> Iterator[PlanRecord | Exception]:
        try:
            with self.path.open(encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            raise SourceUnavailableError(f"Cannot read plan file {self.path}: {e}") from e
        for line_no, line in enumerate(lines, start=1):
            if line.strip():
                yield PlanRecord(counter=line_no, payload=line)

    def close(self) -> None:
        pass
