"""Correlation service: identifier extraction, storage and correlated-log lookup."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from ingest_core.logging import get_ingest_logger
from ingest_core.records import LogInput, LogQuery, StoredLog, as_utc

from ._models import (
    UNKNOWN_IDENTIFIER_TYPE,
    CorrelatedIdentifier,
    CorrelationResult,
    IdentifierMatch,
    LogIdentifierRow,
    LogRef,
    TimeWindow,
)
from .patterns import PatternDefinition, extract_with_patterns, match_field_name
from .protocol import IdentifierStore, LogStore
from .registry import PatternRegistry

logger = get_ingest_logger(__name__)

MESSAGE_FIELD = "message"
METADATA_FIELD = "metadata"

DEFAULT_TIME_WINDOW_MINUTES = 15
DEFAULT_RESULT_LIMIT = 100

# Metadata nested deeper than this is not searched for identifiers.
MAX_METADATA_DEPTH = 32


class CorrelationService:
    """Links logs through shared identifiers.

    Extraction runs at ingestion time against the message and the metadata tree.
    Rows land in the identifier store; queries join them back to the log store.

    Args:
        identifier_store: Backend for LogIdentifierRow.
        log_store: Backend the correlated logs are read from.
        pattern_registry: Source of tenant patterns. Built-ins only when omitted.
        time_window_minutes: Half-width of the window when a query passes none.
        result_limit: Maximum logs returned when a query passes none.
    """

    def __init__(
        self,
        identifier_store: IdentifierStore,
        log_store: LogStore,
        pattern_registry: PatternRegistry | None = None,
        *,
        time_window_minutes: int = DEFAULT_TIME_WINDOW_MINUTES,
        result_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self._identifiers = identifier_store
        self._logs = log_store
        self._registry = pattern_registry or PatternRegistry()
        self._time_window_minutes = time_window_minutes
        self._result_limit = result_limit

    @property
    def pattern_registry(self) -> PatternRegistry:
        return self._registry

    # --- Extraction ---

    def extract_identifiers(self, log: LogInput) -> list[IdentifierMatch]:
        """Extract identifiers using the built-in patterns only."""
        return _extract(log, self._registry.default_patterns())

    async def extract_identifiers_async(self, log: LogInput, organization_id: str) -> list[IdentifierMatch]:
        """Extract identifiers using the organization's patterns merged with the built-ins."""
        patterns = await self._registry.get_patterns_for_org(organization_id)
        return _extract(log, patterns)

    # --- Storage ---

    async def store_identifiers(
        self,
        logs: Sequence[LogRef],
        identifiers_by_log: Mapping[int, Sequence[IdentifierMatch]],
    ) -> int:
        """Persist the identifiers of a batch of logs in one bulk write.

        ``identifiers_by_log[i]`` belongs to ``logs[i]``. Logs without an entry,
        or with an empty one, write nothing. Returns the number of rows written.
        """
        rows: list[LogIdentifierRow] = []
        for index, log in enumerate(logs):
            for match in identifiers_by_log.get(index, ()):
                rows.append(
                    LogIdentifierRow(
                        log_id=log.id,
                        log_time=log.time,
                        project_id=log.project_id,
                        organization_id=log.organization_id,
                        identifier_type=match.type,
                        identifier_value=match.value,
                        source_field=match.source_field,
                    )
                )

        if not rows:
            return 0

        await self._identifiers.insert_rows(rows)
        return len(rows)

    # --- Queries ---

    async def find_correlated_logs(
        self,
        project_id: str,
        identifier_value: str,
        *,
        reference_time: datetime | None = None,
        time_window_minutes: int | None = None,
        limit: int | None = None,
    ) -> CorrelationResult:
        """Find logs of a project that share an identifier value around a reference time.

        The window is symmetric: [reference_time - window, reference_time + window].
        ``identifier.type`` comes from the newest matching log, or is ``unknown``
        when nothing matches. ``total`` ignores ``limit``; a limit of 0 returns
        the count and type without loading any log.

        Raises:
            ValueError: A negative time_window_minutes or limit.
        """
        reference = as_utc(reference_time) if reference_time is not None else datetime.now(UTC)
        minutes = self._time_window_minutes if time_window_minutes is None else time_window_minutes
        limit = self._result_limit if limit is None else limit
        if minutes < 0:
            raise ValueError(f"time_window_minutes must be >= 0, got {minutes}")
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        window = timedelta(minutes=minutes)
        time_from = reference - window
        time_to = reference + window
        time_window = TimeWindow(from_=time_from, to=time_to)

        total = await self._identifiers.count_logs(project_id, identifier_value, time_from, time_to)
        # At least one match is fetched so the type is known even when limit is 0.
        matches = await self._identifiers.find_log_matches(project_id, identifier_value, time_from, time_to, max(limit, 1))
        if not total or not matches:
            return CorrelationResult(
                identifier=CorrelatedIdentifier(type=UNKNOWN_IDENTIFIER_TYPE, value=identifier_value),
                logs=[],
                total=0,
                time_window=time_window,
            )

        logs: list[StoredLog] = []
        if limit:
            log_ids = tuple(m.log_id for m in matches[:limit])
            logs = await self._logs.query(LogQuery(project_id=project_id, log_ids=log_ids))
        logs.sort(key=lambda log: (log.time, log.id))

        logger.debug(f"Correlated {len(logs)} of {total} logs for identifier in project {project_id}")

        return CorrelationResult(
            identifier=CorrelatedIdentifier(type=matches[0].identifier_type, value=identifier_value),
            logs=logs,
            total=total,
            time_window=time_window,
        )

    async def get_log_identifiers(self, log_id: str) -> list[IdentifierMatch]:
        rows = await self._identifiers.load_by_log_ids([log_id])
        return [row.to_match() for row in rows]

    async def get_log_identifiers_batch(self, log_ids: Sequence[str]) -> dict[str, list[IdentifierMatch]]:
        """Identifiers per log. Logs without identifiers have no key at all."""
        if not log_ids:
            return {}

        rows = await self._identifiers.load_by_log_ids(log_ids)
        result: dict[str, list[IdentifierMatch]] = {}
        for row in rows:
            result.setdefault(row.log_id, []).append(row.to_match())
        return result


def _extract(log: LogInput, patterns: Sequence[PatternDefinition]) -> list[IdentifierMatch]:
    matches: list[IdentifierMatch] = []
    seen: set[tuple[str, str]] = set()

    def add(match: IdentifierMatch) -> None:
        key = (match.type, match.value.lower())
        if key not in seen:
            seen.add(key)
            matches.append(match)

    for found in extract_with_patterns(log.message, patterns):
        add(IdentifierMatch(type=found.type, value=found.value, source_field=MESSAGE_FIELD))

    if log.metadata:
        for match in _walk_metadata(log.metadata, METADATA_FIELD, patterns):
            add(match)

    return matches


def _walk_metadata(
    obj: Mapping[str, Any],
    prefix: str,
    patterns: Sequence[PatternDefinition],
    depth: int = 1,
) -> Iterable[IdentifierMatch]:
    """Depth-first walk over nested mappings, at most MAX_METADATA_DEPTH levels.

    Lists and non-string scalars are skipped.
    """
    for key, value in obj.items():
        path = f"{prefix}.{key}"

        if isinstance(value, str):
            by_name = match_field_name(str(key), value, patterns)
            if by_name is not None:
                yield IdentifierMatch(type=by_name.type, value=by_name.value, source_field=path)
                continue
            for found in extract_with_patterns(value, patterns):
                yield IdentifierMatch(type=found.type, value=found.value, source_field=path)

        elif isinstance(value, Mapping) and depth < MAX_METADATA_DEPTH:
            yield from _walk_metadata(value, path, patterns, depth + 1)
