"""Log ingestion: store a batch of logs and index their identifiers.

Identifier work never fails ingestion. A log whose extraction raises is
ingested without identifiers, and a failed identifier write only loses the
index rows of that batch.
"""

from collections.abc import Sequence
from typing import Any

from ingest_core.correlation import CorrelationService, IdentifierMatch, LogRef, LogStore
from ingest_core.logging import get_ingest_logger
from ingest_core.otlp import parse_logs_request, transform_logs
from ingest_core.records import LogInput

logger = get_ingest_logger(__name__)


class IngestionService:
    """Appends logs to the log store and records their identifiers."""

    def __init__(self, log_store: LogStore, correlation: CorrelationService) -> None:
        self._log_store = log_store
        self._correlation = correlation

    async def ingest_logs(self, logs: Sequence[LogInput], project_id: str, organization_id: str) -> int:
        """Ingest a batch of platform logs. Returns the number of logs stored."""
        if not logs:
            return 0

        identifiers_by_log: dict[int, list[IdentifierMatch]] = {}
        for index, log in enumerate(logs):
            try:
                identifiers = await self._correlation.extract_identifiers_async(log, organization_id)
            except Exception as e:
                logger.warning(f"Failed to extract identifiers from log {index}: {e}")
                continue
            if identifiers:
                identifiers_by_log[index] = identifiers

        stored = await self._log_store.append(logs, project_id=project_id, organization_id=organization_id)

        if identifiers_by_log:
            refs = [
                LogRef(id=log.id, time=log.time, project_id=log.project_id, organization_id=log.organization_id)
                for log in stored
            ]
            try:
                written = await self._correlation.store_identifiers(refs, identifiers_by_log)
            except Exception as e:
                logger.error(f"Failed to store identifiers for project {project_id}: {e}")
            else:
                logger.debug(f"Stored {written} identifiers for {len(identifiers_by_log)} logs")

        return len(stored)

    async def ingest_otlp_logs(
        self,
        body: Any,
        content_type: str | None,
        *,
        project_id: str,
        organization_id: str,
    ) -> int:
        """Decode an OTLP log export and ingest its records.

        Raises:
            WireFormatError: The body cannot be decoded at all.
        """
        export = parse_logs_request(body, content_type)
        logs = transform_logs(export)
        count = await self.ingest_logs(logs, project_id, organization_id)
        logger.info(f"Ingested {count} OTLP logs for project {project_id}")
        return count
