"""Storage protocols consumed by the correlation engine.

Every read and write is scoped by project or organization; no operation spans
tenants. Implementations: ClickHouseIdentifierStore (production),
MemoryIdentifierStore, MemoryLogStore and MemoryPatternStore (testing, local runs).
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from ingest_core.records import LogInput, LogQuery, StoredLog

from ._models import IdentifierPattern, LogIdentifierRow, LogMatch


@runtime_checkable
class IdentifierStore(Protocol):
    """Time-partitioned store of LogIdentifierRow."""

    async def insert_rows(self, rows: Sequence[LogIdentifierRow]) -> None:
        """Persist rows in bulk. An empty sequence is a no-op."""
        ...

    async def find_log_matches(
        self,
        project_id: str,
        identifier_value: str,
        time_from: datetime,
        time_to: datetime,
        limit: int,
    ) -> list[LogMatch]:
        """Return at most ``limit`` logs carrying the exact value within [time_from, time_to].

        One entry per log, newest first, ties broken by log id. When a log holds
        the value under several types, the lexicographically smallest type is reported.
        """
        ...

    async def count_logs(self, project_id: str, identifier_value: str, time_from: datetime, time_to: datetime) -> int:
        """Count distinct logs carrying the value within [time_from, time_to]."""
        ...

    async def load_by_log_ids(self, log_ids: Sequence[str]) -> list[LogIdentifierRow]:
        """Return every row of the given logs, grouped by log id."""
        ...


@runtime_checkable
class LogStore(Protocol):
    """Time-partitioned log store."""

    async def append(self, logs: Sequence[LogInput], *, project_id: str, organization_id: str) -> list[StoredLog]:
        """Store logs and return them with their assigned ids, in input order."""
        ...

    async def count(self, query: LogQuery) -> int: ...

    async def query(self, query: LogQuery) -> list[StoredLog]:
        """Return matching logs ordered by time ascending, then id."""
        ...


@runtime_checkable
class PatternStore(Protocol):
    """Per-organization identifier pattern configuration."""

    async def list_patterns(self, organization_id: str) -> list[IdentifierPattern]: ...
