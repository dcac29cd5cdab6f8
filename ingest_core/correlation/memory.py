"""In-memory correlation stores for testing and local runs.

Not for production use: all data is lost when the process exits.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from uuid import uuid4

from ingest_core.records import LogInput, LogQuery, StoredLog

from ._models import IdentifierPattern, LogIdentifierRow, LogMatch


class MemoryIdentifierStore:
    """List-backed identifier store. Rows are kept in insertion order."""

    def __init__(self) -> None:
        self._rows: list[LogIdentifierRow] = []

    @property
    def rows(self) -> list[LogIdentifierRow]:
        return list(self._rows)

    async def insert_rows(self, rows: Sequence[LogIdentifierRow]) -> None:
        self._rows.extend(rows)

    async def find_log_matches(
        self,
        project_id: str,
        identifier_value: str,
        time_from: datetime,
        time_to: datetime,
        limit: int,
    ) -> list[LogMatch]:
        by_log: dict[str, LogMatch] = {}
        for row in self._matching(project_id, identifier_value, time_from, time_to):
            current = by_log.get(row.log_id)
            if current is None or row.identifier_type < current.identifier_type:
                by_log[row.log_id] = LogMatch(log_id=row.log_id, log_time=row.log_time, identifier_type=row.identifier_type)

        ordered = sorted(by_log.values(), key=lambda m: m.log_id)
        ordered.sort(key=lambda m: m.log_time, reverse=True)
        return ordered[:limit]

    async def count_logs(self, project_id: str, identifier_value: str, time_from: datetime, time_to: datetime) -> int:
        return len({row.log_id for row in self._matching(project_id, identifier_value, time_from, time_to)})

    async def load_by_log_ids(self, log_ids: Sequence[str]) -> list[LogIdentifierRow]:
        wanted = set(log_ids)
        rows = [row for row in self._rows if row.log_id in wanted]
        return sorted(rows, key=lambda r: r.log_id)

    def _matching(self, project_id: str, identifier_value: str, time_from: datetime, time_to: datetime) -> Iterable[LogIdentifierRow]:
        for row in self._rows:
            if row.project_id != project_id or row.identifier_value != identifier_value:
                continue
            if time_from <= row.log_time <= time_to:
                yield row


class MemoryLogStore:
    """Dict-backed log store."""

    def __init__(self) -> None:
        self._logs: dict[str, StoredLog] = {}

    async def append(self, logs: Sequence[LogInput], *, project_id: str, organization_id: str) -> list[StoredLog]:
        stored: list[StoredLog] = []
        for log in logs:
            record = StoredLog(
                id=str(uuid4()),
                time=log.time or datetime.now(UTC),
                project_id=project_id,
                organization_id=organization_id,
                service=log.service,
                level=log.level,
                message=log.message,
                metadata=log.metadata,
                trace_id=log.trace_id,
                span_id=log.span_id,
            )
            self._logs[record.id] = record
            stored.append(record)
        return stored

    async def count(self, query: LogQuery) -> int:
        return sum(1 for _ in self._filter(query))

    async def query(self, query: LogQuery) -> list[StoredLog]:
        result = sorted(self._filter(query), key=lambda log: (log.time, log.id))
        if query.limit is not None:
            result = result[: query.limit]
        return result

    def _filter(self, query: LogQuery) -> Iterable[StoredLog]:
        if query.log_ids is not None:
            candidates: Iterable[StoredLog] = (self._logs[i] for i in query.log_ids if i in self._logs)
        else:
            candidates = self._logs.values()

        for log in candidates:
            if query.project_id is not None and log.project_id != query.project_id:
                continue
            if query.time_from is not None and log.time < query.time_from:
                continue
            if query.time_to is not None and log.time > query.time_to:
                continue
            yield log


class MemoryPatternStore:
    """Pattern store holding tenant patterns per organization."""

    def __init__(self, patterns: Iterable[IdentifierPattern] = ()) -> None:
        self._patterns: dict[str, list[IdentifierPattern]] = {}
        for pattern in patterns:
            self.add(pattern)

    def add(self, pattern: IdentifierPattern) -> None:
        self._patterns.setdefault(pattern.organization_id, []).append(pattern)

    async def list_patterns(self, organization_id: str) -> list[IdentifierPattern]:
        return list(self._patterns.get(organization_id, []))
