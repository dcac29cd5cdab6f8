"""Factory functions for correlation stores and services based on settings."""

from ingest_core.settings import Settings

from .protocol import IdentifierStore, LogStore, PatternStore
from .registry import PatternRegistry
from .service import CorrelationService


def create_identifier_store(settings: Settings) -> IdentifierStore:
    """Create an IdentifierStore based on settings.

    Selects ClickHouseIdentifierStore when clickhouse_host is configured,
    otherwise falls back to MemoryIdentifierStore.

    Backends are imported lazily so the in-memory path does not load the driver.
    """
    if settings.clickhouse_host:
        from .clickhouse import ClickHouseIdentifierStore

        return ClickHouseIdentifierStore(
            host=settings.clickhouse_host,
            port=settings.clickhouse_port,
            database=settings.clickhouse_database,
            username=settings.clickhouse_user,
            password=settings.clickhouse_password,
            secure=settings.clickhouse_secure,
            insert_batch_size=settings.identifier_insert_batch_size,
        )

    from .memory import MemoryIdentifierStore

    return MemoryIdentifierStore()


def create_correlation_service(
    settings: Settings,
    *,
    log_store: LogStore,
    pattern_store: PatternStore | None = None,
    identifier_store: IdentifierStore | None = None,
) -> CorrelationService:
    """Wire a CorrelationService with the window, limit and cache TTL from settings."""
    return CorrelationService(
        identifier_store or create_identifier_store(settings),
        log_store,
        PatternRegistry(pattern_store, cache_ttl_seconds=settings.pattern_cache_ttl_seconds),
        time_window_minutes=settings.correlation_time_window_minutes,
        result_limit=settings.correlation_result_limit,
    )
