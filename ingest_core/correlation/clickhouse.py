"""ClickHouse-backed identifier store for production use.

Single MergeTree table partitioned by month of ``log_time`` and ordered by
(project_id, identifier_value, log_time), so a correlation lookup reads one
project's slice of one value and prunes every partition outside the window.
"""

import asyncio
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

import clickhouse_connect

from ingest_core.logging import get_ingest_logger

from ._models import LogIdentifierRow, LogMatch

logger = get_ingest_logger(__name__)

TABLE_LOG_IDENTIFIERS = "log_identifiers"

_COLUMNS = [
    "log_id",
    "log_time",
    "project_id",
    "organization_id",
    "identifier_type",
    "identifier_value",
    "source_field",
]

_DDL_LOG_IDENTIFIERS = f"""
CREATE TABLE IF NOT EXISTS {TABLE_LOG_IDENTIFIERS}
(
    log_id             String,
    log_time           DateTime64(3, 'UTC'),
    project_id         String,
    organization_id    String,
    identifier_type    LowCardinality(String),
    identifier_value   String,
    source_field       String,
    INDEX log_id_idx log_id TYPE bloom_filter GRANULARITY 1
)
ENGINE = MergeTree()
PARTITION BY toYYYYMM(log_time)
ORDER BY (project_id, identifier_value, log_time)
SETTINGS index_granularity = 8192
"""

_WINDOW_FILTER = (
    "project_id = {project_id:String} "
    "AND identifier_value = {identifier_value:String} "
    "AND log_time >= {time_from:DateTime64(3, 'UTC')} "
    "AND log_time <= {time_to:DateTime64(3, 'UTC')}"
)


class ClickHouseIdentifierStore:
    """ClickHouse identifier store.

    All sync operations run on a single-thread executor (max_workers=1), so the
    lazily created client needs no locking. Async methods dispatch to this
    executor via loop.run_in_executor().
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 8443,
        database: str = "default",
        username: str = "default",
        password: str = "",
        secure: bool = True,
        insert_batch_size: int = 5000,
    ) -> None:
        self._params = {
            "host": host,
            "port": port,
            "database": database,
            "username": username,
            "password": password,
            "secure": secure,
        }
        self._insert_batch_size = max(1, insert_batch_size)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ch-identifiers")
        self._client: Any = None
        self._tables_initialized = False

    async def _run(self, fn: Any, *args: Any) -> Any:
        """Run a sync function on the dedicated executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    # --- Connection management (sync, executor thread only) ---

    def _connect(self) -> None:
        self._client = clickhouse_connect.get_client(  # pyright: ignore[reportUnknownMemberType]
            **self._params,  # pyright: ignore[reportArgumentType]
        )
        logger.info(f"Identifier store connected to ClickHouse at {self._params['host']}:{self._params['port']}")

    def _ensure_tables(self) -> None:
        if self._tables_initialized:
            return
        if self._client is None:
            self._connect()
        self._client.command(_DDL_LOG_IDENTIFIERS)
        self._tables_initialized = True
        logger.info("Identifier store tables verified/created")

    # --- Async public API ---

    async def insert_rows(self, rows: Sequence[LogIdentifierRow]) -> None:
        """Bulk insert, chunked to bound the size of each request."""
        if not rows:
            return
        await self._run(self._insert_rows_sync, list(rows))

    async def find_log_matches(
        self,
        project_id: str,
        identifier_value: str,
        time_from: datetime,
        time_to: datetime,
        limit: int,
    ) -> list[LogMatch]:
        return await self._run(self._find_log_matches_sync, project_id, identifier_value, time_from, time_to, limit)

    async def count_logs(self, project_id: str, identifier_value: str, time_from: datetime, time_to: datetime) -> int:
        return await self._run(self._count_logs_sync, project_id, identifier_value, time_from, time_to)

    async def load_by_log_ids(self, log_ids: Sequence[str]) -> list[LogIdentifierRow]:
        if not log_ids:
            return []
        return await self._run(self._load_by_log_ids_sync, list(log_ids))

    def shutdown(self) -> None:
        """Release the executor and close the client."""
        self._executor.shutdown(wait=True)
        if self._client is not None:
            self._client.close()
            self._client = None

    # --- Sync implementations (executor thread only) ---

    def _insert_rows_sync(self, rows: list[LogIdentifierRow]) -> None:
        self._ensure_tables()
        for start in range(0, len(rows), self._insert_batch_size):
            chunk = rows[start : start + self._insert_batch_size]
            self._client.insert(
                TABLE_LOG_IDENTIFIERS,
                [
                    [
                        row.log_id,
                        row.log_time,
                        row.project_id,
                        row.organization_id,
                        row.identifier_type,
                        row.identifier_value,
                        row.source_field,
                    ]
                    for row in chunk
                ],
                column_names=_COLUMNS,
            )
        logger.debug(f"Inserted {len(rows)} identifier rows")

    def _find_log_matches_sync(
        self,
        project_id: str,
        identifier_value: str,
        time_from: datetime,
        time_to: datetime,
        limit: int,
    ) -> list[LogMatch]:
        self._ensure_tables()
        result = self._client.query(
            f"SELECT log_id, max(log_time) AS t, min(identifier_type) "
            f"FROM {TABLE_LOG_IDENTIFIERS} "
            f"WHERE {_WINDOW_FILTER} "
            f"GROUP BY log_id "
            f"ORDER BY t DESC, log_id ASC "
            f"LIMIT {{limit:UInt32}}",
            parameters={
                "project_id": project_id,
                "identifier_value": identifier_value,
                "time_from": time_from,
                "time_to": time_to,
                "limit": limit,
            },
        )
        return [
            LogMatch(log_id=_decode(row[0]), log_time=row[1], identifier_type=_decode(row[2]))
            for row in result.result_rows
        ]

    def _count_logs_sync(self, project_id: str, identifier_value: str, time_from: datetime, time_to: datetime) -> int:
        self._ensure_tables()
        result = self._client.query(
            f"SELECT uniqExact(log_id) FROM {TABLE_LOG_IDENTIFIERS} WHERE {_WINDOW_FILTER}",
            parameters={
                "project_id": project_id,
                "identifier_value": identifier_value,
                "time_from": time_from,
                "time_to": time_to,
            },
        )
        return int(result.result_rows[0][0]) if result.result_rows else 0

    def _load_by_log_ids_sync(self, log_ids: list[str]) -> list[LogIdentifierRow]:
        self._ensure_tables()
        result = self._client.query(
            f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_LOG_IDENTIFIERS} "
            f"WHERE log_id IN {{log_ids:Array(String)}} "
            f"ORDER BY log_id, log_time, identifier_type, identifier_value",
            parameters={"log_ids": log_ids},
        )
        return [
            LogIdentifierRow(
                log_id=_decode(row[0]),
                log_time=row[1],
                project_id=_decode(row[2]),
                organization_id=_decode(row[3]),
                identifier_type=_decode(row[4]),
                identifier_value=_decode(row[5]),
                source_field=_decode(row[6]),
            )
            for row in result.result_rows
        ]


def _decode(value: Any) -> str:
    """ClickHouse String columns can come back as bytes."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
