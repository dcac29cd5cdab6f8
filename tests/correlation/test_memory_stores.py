"""Tests for the in-memory correlation stores."""

from datetime import UTC, datetime, timedelta

import pytest

from ingest_core.correlation import (
    IdentifierStore,
    LogIdentifierRow,
    LogStore,
    MemoryIdentifierStore,
    MemoryLogStore,
    MemoryPatternStore,
    PatternStore,
)
from ingest_core.records import LogInput, LogLevel, LogQuery

T0 = datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC)


def _row(log_id: str, minutes: int = 0, *, value: str = "v-1", type_: str = "request_id", project_id: str = "p") -> LogIdentifierRow:
    return LogIdentifierRow(
        log_id=log_id,
        log_time=T0 + timedelta(minutes=minutes),
        project_id=project_id,
        organization_id="o",
        identifier_type=type_,
        identifier_value=value,
        source_field="message",
    )


class TestProtocolCompliance:
    def test_identifier_store(self):
        assert isinstance(MemoryIdentifierStore(), IdentifierStore)

    def test_log_store(self):
        assert isinstance(MemoryLogStore(), LogStore)

    def test_pattern_store(self):
        assert isinstance(MemoryPatternStore(), PatternStore)


class TestMemoryIdentifierStore:
    @pytest.mark.asyncio
    async def test_find_log_matches_one_row_per_log_newest_first(self):
        store = MemoryIdentifierStore()
        await store.insert_rows([
            _row("a", 0, type_="user_id"),
            _row("a", 0, type_="request_id"),
            _row("c", 5),
            _row("b", 5),
        ])

        matches = await store.find_log_matches("p", "v-1", T0 - timedelta(hours=1), T0 + timedelta(hours=1), 10)

        assert [m.log_id for m in matches] == ["b", "c", "a"]
        assert matches[2].identifier_type == "request_id"

    @pytest.mark.asyncio
    async def test_find_log_matches_respects_limit_and_window(self):
        store = MemoryIdentifierStore()
        await store.insert_rows([_row("a", 0), _row("b", 10), _row("c", 20)])

        matches = await store.find_log_matches("p", "v-1", T0, T0 + timedelta(minutes=15), 1)

        assert [m.log_id for m in matches] == ["b"]

    @pytest.mark.asyncio
    async def test_count_logs_is_distinct(self):
        store = MemoryIdentifierStore()
        await store.insert_rows([_row("a", type_="user_id"), _row("a"), _row("b"), _row("z", project_id="other")])

        assert await store.count_logs("p", "v-1", T0, T0) == 2

    @pytest.mark.asyncio
    async def test_load_by_log_ids(self):
        store = MemoryIdentifierStore()
        await store.insert_rows([_row("a", value="x"), _row("b"), _row("a", value="y")])

        rows = await store.load_by_log_ids(["a"])

        assert [r.identifier_value for r in rows] == ["x", "y"]


class TestMemoryLogStore:
    @pytest.mark.asyncio
    async def test_append_assigns_ids_and_time(self):
        store = MemoryLogStore()

        stored = await store.append(
            [LogInput(message="a", level=LogLevel.ERROR, time=T0), LogInput(message="b")],
            project_id="p",
            organization_id="o",
        )

        assert len(stored) == 2
        assert stored[0].id != stored[1].id
        assert stored[0].time == T0
        assert stored[1].time.tzinfo is not None
        assert stored[0].level is LogLevel.ERROR

    @pytest.mark.asyncio
    async def test_query_and_count(self):
        store = MemoryLogStore()
        stored = await store.append(
            [LogInput(message=str(i), time=T0 + timedelta(minutes=i)) for i in range(5)],
            project_id="p",
            organization_id="o",
        )
        await store.append([LogInput(message="other", time=T0)], project_id="q", organization_id="o")

        window = LogQuery(project_id="p", time_from=T0 + timedelta(minutes=1), time_to=T0 + timedelta(minutes=3))
        assert [log.message for log in await store.query(window)] == ["1", "2", "3"]
        assert await store.count(window) == 3
        assert await store.count(LogQuery()) == 6

        by_id = await store.query(LogQuery(log_ids=(stored[4].id, stored[0].id)))
        assert [log.message for log in by_id] == ["0", "4"]

        assert len(await store.query(LogQuery(project_id="p", limit=2))) == 2
