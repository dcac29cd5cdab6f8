"""Error group storage: protocol, in-memory backend and the grouping entry point."""

import asyncio
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable
from uuid import uuid4

from ingest_core.logging import get_ingest_logger

from ._types import ErrorGroup, ExceptionLanguage, ParsedException
from .fingerprint import generate_fingerprint

logger = get_ingest_logger(__name__)


@runtime_checkable
class ErrorGroupStore(Protocol):
    """Protocol for error group backends.

    Groups are unique per (organization_id, project_id, fingerprint).
    """

    async def upsert(
        self,
        *,
        organization_id: str,
        project_id: str | None,
        fingerprint: str,
        exception_type: str,
        exception_message: str | None,
        language: ExceptionLanguage,
        sample_log_id: str | None,
    ) -> ErrorGroup:
        """Create an open group with one occurrence, or count one more occurrence.

        An existing group keeps its status, first_seen and sample log.
        """
        ...

    async def get(self, organization_id: str, project_id: str | None, fingerprint: str) -> ErrorGroup | None:
        """Return the group for a fingerprint, or None."""
        ...


class MemoryErrorGroupStore:
    """Dict-based error group store for tests and local runs."""

    def __init__(self) -> None:
        self._groups: dict[tuple[str, str | None, str], ErrorGroup] = {}
        self._lock = asyncio.Lock()

    async def upsert(
        self,
        *,
        organization_id: str,
        project_id: str | None,
        fingerprint: str,
        exception_type: str,
        exception_message: str | None,
        language: ExceptionLanguage,
        sample_log_id: str | None,
    ) -> ErrorGroup:
        key = (organization_id, project_id, fingerprint)
        now = datetime.now(UTC)
        async with self._lock:
            existing = self._groups.get(key)
            if existing is None:
                group = ErrorGroup(
                    id=str(uuid4()),
                    organization_id=organization_id,
                    project_id=project_id,
                    fingerprint=fingerprint,
                    exception_type=exception_type,
                    exception_message=exception_message,
                    language=language,
                    first_seen=now,
                    last_seen=now,
                    sample_log_id=sample_log_id,
                )
            else:
                group = existing.model_copy(
                    update={
                        "occurrence_count": existing.occurrence_count + 1,
                        "last_seen": max(now, existing.last_seen),
                    }
                )
            self._groups[key] = group
        return group

    async def get(self, organization_id: str, project_id: str | None, fingerprint: str) -> ErrorGroup | None:
        return self._groups.get((organization_id, project_id, fingerprint))


async def group_exception(
    store: ErrorGroupStore,
    parsed: ParsedException,
    *,
    organization_id: str,
    project_id: str | None,
    sample_log_id: str | None = None,
) -> ErrorGroup:
    """Fingerprint a parsed exception and record it against its error group."""
    fingerprint = generate_fingerprint(parsed)
    group = await store.upsert(
        organization_id=organization_id,
        project_id=project_id,
        fingerprint=fingerprint,
        exception_type=parsed.exception_type,
        exception_message=parsed.exception_message or None,
        language=parsed.language,
        sample_log_id=sample_log_id,
    )
    if group.occurrence_count == 1:
        logger.info(f"New error group {group.id} for {parsed.exception_type} ({fingerprint[:12]})")
    else:
        logger.debug(f"Error group {group.id} now has {group.occurrence_count} occurrences")
    return group
