"""Tests for CorrelationService extraction, storage and queries."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from ingest_core.correlation import (
    CorrelationService,
    IdentifierMatch,
    IdentifierPattern,
    LogRef,
    MemoryIdentifierStore,
    MemoryLogStore,
    MemoryPatternStore,
)
from ingest_core.records import LogInput, StoredLog

UUID = "550e8400-e29b-41d4-a716-446655440000"
REFERENCE_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)
PROJECT = "proj-1"
ORG = "org-1"


def _ref(log: StoredLog) -> LogRef:
    return LogRef(id=log.id, time=log.time, project_id=log.project_id, organization_id=log.organization_id)


async def _store_logs(
    service: CorrelationService,
    log_store: MemoryLogStore,
    offsets_minutes: list[int],
    *,
    value: str = "shared-request-123",
    identifier_type: str = "request_id",
    project_id: str = PROJECT,
) -> list[StoredLog]:
    """Append one log per offset around REFERENCE_TIME, each tagged with the same identifier."""
    inputs = [LogInput(message=f"step {i}", time=REFERENCE_TIME + timedelta(minutes=m)) for i, m in enumerate(offsets_minutes)]
    stored = await log_store.append(inputs, project_id=project_id, organization_id=ORG)
    match = IdentifierMatch(type=identifier_type, value=value, source_field="metadata.request_id")
    await service.store_identifiers([_ref(log) for log in stored], {i: [match] for i in range(len(stored))})
    return stored


class TestExtractIdentifiers:
    def test_uuid_is_deduplicated(self, correlation_service: CorrelationService):
        log = LogInput(message=f"Processing {UUID}, retrying {UUID}")

        matches = correlation_service.extract_identifiers(log)

        assert [m for m in matches if m.type == "uuid"] == [IdentifierMatch(type="uuid", value=UUID, source_field="message")]

    def test_nested_metadata_field_name(self, correlation_service: CorrelationService):
        log = LogInput(message="checkout finished", metadata={"context": {"user_id": "u-123"}})

        matches = correlation_service.extract_identifiers(log)

        assert matches == [IdentifierMatch(type="user_id", value="u-123", source_field="metadata.context.user_id")]

    def test_metadata_values_are_scanned(self):
        service = CorrelationService(MemoryIdentifierStore(), MemoryLogStore())
        log = LogInput(message="", metadata={"note": "forwarded req_abcdef12 upstream"})

        assert service.extract_identifiers(log) == [
            IdentifierMatch(type="request_id", value="req_abcdef12", source_field="metadata.note")
        ]

    def test_lists_and_non_strings_are_skipped(self, correlation_service: CorrelationService):
        log = LogInput(message="ok", metadata={"ids": [UUID], "user_id": 7, "retry": True, "extra": None})
        assert correlation_service.extract_identifiers(log) == []

    def test_message_and_metadata_share_dedup(self, correlation_service: CorrelationService):
        log = LogInput(message=f"Processing {UUID}", metadata={"uuid": UUID.upper()})

        matches = correlation_service.extract_identifiers(log)

        assert matches == [IdentifierMatch(type="uuid", value=UUID, source_field="message")]

    def test_deep_metadata_is_not_walked_past_the_cap(self, correlation_service: CorrelationService):
        shallow: dict = {"user_id": "u-shallow"}
        deep: dict = {"user_id": "u-deep"}
        for _ in range(2000):
            deep = {"nested": deep}
        log = LogInput(message="deep payload", metadata={"a": shallow, "b": deep})

        matches = correlation_service.extract_identifiers(log)

        assert matches == [IdentifierMatch(type="user_id", value="u-shallow", source_field="metadata.a.user_id")]

    def test_no_identifiers(self, correlation_service: CorrelationService):
        assert correlation_service.extract_identifiers(LogInput(message="plain text")) == []

    @pytest.mark.asyncio
    async def test_custom_org_pattern(self, correlation_service: CorrelationService, pattern_store: MemoryPatternStore):
        pattern_store.add(
            IdentifierPattern(
                organization_id=ORG,
                name="customer_id",
                display_name="Customer ID",
                pattern=r"\bCUST-([A-Z0-9]+)\b",
                field_names=("customer",),
                priority=10,
            )
        )
        log = LogInput(message="Invoice created for CUST-AB12C", metadata={"customer": "C-9"})

        matches = await correlation_service.extract_identifiers_async(log, ORG)

        assert IdentifierMatch(type="customer_id", value="AB12C", source_field="message") in matches
        assert IdentifierMatch(type="customer_id", value="C-9", source_field="metadata.customer") in matches
        assert correlation_service.extract_identifiers(log) == []

    @pytest.mark.asyncio
    async def test_async_without_custom_patterns_matches_sync(self, correlation_service: CorrelationService):
        log = LogInput(message=f"request_id=abc12345-xyz for {UUID}")

        async_matches = await correlation_service.extract_identifiers_async(log, ORG)

        assert sorted(async_matches, key=lambda m: m.type) == sorted(correlation_service.extract_identifiers(log), key=lambda m: m.type)


class TestStoreIdentifiers:
    @pytest.mark.asyncio
    async def test_rows_follow_log_positions(
        self, correlation_service: CorrelationService, identifier_store: MemoryIdentifierStore, log_store: MemoryLogStore
    ):
        stored = await log_store.append([LogInput(message=str(i)) for i in range(3)], project_id=PROJECT, organization_id=ORG)
        first = IdentifierMatch(type="uuid", value=UUID, source_field="message")
        second = IdentifierMatch(type="user_id", value="u-1", source_field="metadata.user_id")

        written = await correlation_service.store_identifiers([_ref(log) for log in stored], {0: [first, second], 2: []})

        assert written == 2
        assert {row.log_id for row in identifier_store.rows} == {stored[0].id}
        assert identifier_store.rows[0].log_time == stored[0].time
        assert identifier_store.rows[1].source_field == "metadata.user_id"

    @pytest.mark.asyncio
    async def test_nothing_to_store_skips_the_write(self, log_store: MemoryLogStore):
        identifier_store = AsyncMock()
        service = CorrelationService(identifier_store, log_store)

        assert await service.store_identifiers([], {}) == 0
        identifier_store.insert_rows.assert_not_called()


class TestFindCorrelatedLogs:
    @pytest.mark.asyncio
    async def test_two_logs_share_an_identifier(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [-3, 5])

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME)

        assert len(result.logs) == 2
        assert result.total == 2
        assert result.identifier.type == "request_id"
        assert result.identifier.value == "shared-request-123"
        assert [log.message for log in result.logs] == ["step 0", "step 1"]

    @pytest.mark.asyncio
    async def test_default_reference_time_is_now(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        stored = await log_store.append([LogInput(message="a"), LogInput(message="b")], project_id=PROJECT, organization_id=ORG)
        match = IdentifierMatch(type="request_id", value="shared-request-123", source_field="message")
        await correlation_service.store_identifiers([_ref(log) for log in stored], {0: [match], 1: [match]})

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123")

        assert len(result.logs) == 2
        assert result.identifier.type == "request_id"

    @pytest.mark.asyncio
    async def test_unknown_value(self, correlation_service: CorrelationService):
        result = await correlation_service.find_correlated_logs(PROJECT, "never-seen", reference_time=REFERENCE_TIME)

        assert result.logs == []
        assert result.total == 0
        assert result.identifier.type == "unknown"
        assert result.identifier.value == "never-seen"
        assert result.time_window.from_ == REFERENCE_TIME - timedelta(minutes=15)
        assert result.time_window.to == REFERENCE_TIME + timedelta(minutes=15)

    @pytest.mark.asyncio
    async def test_window_is_symmetric_and_inclusive(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [-16, -15, 0, 15, 16])

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME)

        assert result.total == 3
        assert [log.message for log in result.logs] == ["step 1", "step 2", "step 3"]

    @pytest.mark.asyncio
    async def test_custom_window(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [-3, 1, 20])

        result = await correlation_service.find_correlated_logs(
            PROJECT, "shared-request-123", reference_time=REFERENCE_TIME, time_window_minutes=2
        )

        assert [log.message for log in result.logs] == ["step 1"]

    @pytest.mark.asyncio
    async def test_limit_truncates_logs_not_total(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [-2, -1, 0, 1])

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME, limit=2)

        assert result.total == 4
        assert [log.message for log in result.logs] == ["step 2", "step 3"]

    @pytest.mark.asyncio
    async def test_scoped_to_project(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [0])
        await _store_logs(correlation_service, log_store, [1], project_id="proj-2")

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME)

        assert result.total == 1
        assert all(log.project_id == PROJECT for log in result.logs)

    @pytest.mark.asyncio
    async def test_value_match_is_exact(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [0])

        result = await correlation_service.find_correlated_logs(PROJECT, "SHARED-REQUEST-123", reference_time=REFERENCE_TIME)

        assert result.total == 0

    @pytest.mark.asyncio
    async def test_limit_zero_keeps_total_and_type(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        await _store_logs(correlation_service, log_store, [-1, 1])

        result = await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME, limit=0)

        assert result.logs == []
        assert result.total == 2
        assert result.identifier.type == "request_id"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{"time_window_minutes": -5}, {"limit": -1}])
    async def test_negative_bounds_are_rejected(self, correlation_service: CorrelationService, kwargs: dict[str, int]):
        with pytest.raises(ValueError):
            await correlation_service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME, **kwargs)

    @pytest.mark.asyncio
    async def test_naive_timestamps_are_utc(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        naive_reference = REFERENCE_TIME.replace(tzinfo=None)
        stored = await log_store.append([LogInput(message="naive", time=naive_reference)], project_id=PROJECT, organization_id=ORG)
        match = IdentifierMatch(type="order_id", value="ord_5521", source_field="message")
        await correlation_service.store_identifiers([_ref(stored[0])], {0: [match]})

        result = await correlation_service.find_correlated_logs(PROJECT, "ord_5521", reference_time=naive_reference)

        assert stored[0].time == REFERENCE_TIME
        assert result.total == 1
        assert result.logs[0].time.tzinfo is UTC
        assert result.time_window.from_ == REFERENCE_TIME - timedelta(minutes=15)

    @pytest.mark.asyncio
    async def test_defaults_come_from_construction(self, identifier_store: MemoryIdentifierStore, log_store: MemoryLogStore):
        service = CorrelationService(identifier_store, log_store, time_window_minutes=1, result_limit=1)
        await _store_logs(service, log_store, [-1, 0, 5])

        result = await service.find_correlated_logs(PROJECT, "shared-request-123", reference_time=REFERENCE_TIME)

        assert result.total == 2
        assert [log.message for log in result.logs] == ["step 1"]


class TestGetLogIdentifiers:
    @pytest.mark.asyncio
    async def test_single_log(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        stored = await _store_logs(correlation_service, log_store, [0])

        identifiers = await correlation_service.get_log_identifiers(stored[0].id)

        assert identifiers == [IdentifierMatch(type="request_id", value="shared-request-123", source_field="metadata.request_id")]

    @pytest.mark.asyncio
    async def test_unknown_log(self, correlation_service: CorrelationService):
        assert await correlation_service.get_log_identifiers("missing") == []

    @pytest.mark.asyncio
    async def test_batch_omits_logs_without_identifiers(self, correlation_service: CorrelationService, log_store: MemoryLogStore):
        tagged = await _store_logs(correlation_service, log_store, [0])
        untagged = await log_store.append([LogInput(message="quiet")], project_id=PROJECT, organization_id=ORG)

        result = await correlation_service.get_log_identifiers_batch([tagged[0].id, untagged[0].id])

        assert tagged[0].id in result
        assert untagged[0].id not in result
        assert len(result[tagged[0].id]) == 1

    @pytest.mark.asyncio
    async def test_batch_empty_input_skips_the_query(self, log_store: MemoryLogStore):
        identifier_store = AsyncMock()
        service = CorrelationService(identifier_store, log_store)

        assert await service.get_log_identifiers_batch([]) == {}
        identifier_store.load_by_log_ids.assert_not_called()
