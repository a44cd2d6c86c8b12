"""
PostgreSQL plan source.

Connects once, runs the configured init command (typically loading the
extension that records plans), then runs the pull command on every tick. The
pull command must return rows of (counter, plan) where plan is the JSON plan
document as text, json or jsonb.
"""

import logging
from collections.abc import Iterator
from typing import Any

import psycopg

from ..config import ReceiverConfig
from ..errors import PullCommandError, RecordScanError, SourceUnavailableError
from .base import PlanRecord

logger = logging.getLogger(__name__)


class PostgresPlanSource:
    """Pull plan documents from PostgreSQL with psycopg."""

    def __init__(self, connection: Any, pull_command: str):
        self._conn = connection
        self.pull_command = pull_command

    @classmethod
    def connect(cls, config: ReceiverConfig) -> "PostgresPlanSource":
        """Open the connection and execute the init command.

        Raises SourceUnavailableError when the database cannot be reached or
        the init command fails; the receiver cannot start in either case.
        """
        try:
            conn = psycopg.connect(config.conn_str, autocommit=True)
        except psycopg.Error as e:
            raise SourceUnavailableError(f"Cannot connect to PostgreSQL: {e}") from e
        if config.init_command:
            try:
                conn.execute(config.init_command)
            except psycopg.Error as e:
                conn.close()
                raise SourceUnavailableError(f"Init command failed: {e}") from e
        logger.info("Connected to postgres. Init command executed.")
        return cls(conn, config.pull_command)

    def fetch(self) -> Iterator[PlanRecord | Exception]:
        if self._conn.closed:
            raise SourceUnavailableError("PostgreSQL connection is closed")
        try:
            rows = self._conn.execute(self.pull_command).fetchall()
        except psycopg.OperationalError as e:
            raise SourceUnavailableError(f"PostgreSQL connection lost: {e}") from e
        except psycopg.Error as e:
            if self._conn.closed:
                raise SourceUnavailableError(f"PostgreSQL connection lost: {e}") from e
            raise PullCommandError(f"Pull command failed: {e}") from e

        for row in rows:
            if row is None or len(row) != 2:
                width = "no" if row is None else len(row)
                yield RecordScanError(f"Scan row failed: expected 2 columns, got {width}")
                continue
            counter, payload = row
            if payload is None:
                yield RecordScanError("Scan row failed: plan column is NULL", counter=counter)
                continue
            yield PlanRecord(counter=counter, payload=payload)

    def close(self) -> None:
        if not self._conn.closed:
            self._conn.close()
