"""Core configuration settings for ingestion-time processing.

Settings are loaded from environment variables with .env file support via
pydantic-settings.

Environment variables:
    CLICKHOUSE_HOST: ClickHouse host for identifier storage (empty = in-memory)
    CLICKHOUSE_PORT, CLICKHOUSE_DATABASE, CLICKHOUSE_USER,
    CLICKHOUSE_PASSWORD, CLICKHOUSE_SECURE: ClickHouse connection details
    CORRELATION_TIME_WINDOW_MINUTES: Default half-width of the correlation window
    CORRELATION_RESULT_LIMIT: Default number of correlated logs returned
    PATTERN_CACHE_TTL_SECONDS: How long tenant identifier patterns are cached
    IDENTIFIER_INSERT_BATCH_SIZE: Rows per bulk insert into the identifier table

Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values

Example:
    >>> from ingest_core.settings import settings
    >>> settings.correlation_time_window_minutes
    15

Note:
    Settings are loaded once at module import and frozen. The process must be
    restarted to pick up changes.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for ingestion-time normalization and correlation.

    Attributes:
        clickhouse_host: ClickHouse host. When empty, in-memory stores are used.
        clickhouse_port: ClickHouse HTTP(S) port.
        clickhouse_database: Database holding the identifier table.
        clickhouse_user: ClickHouse user name.
        clickhouse_password: ClickHouse password.
        clickhouse_secure: Use HTTPS for the ClickHouse connection.
        correlation_time_window_minutes: Default +/- window used by
            find_correlated_logs when the caller passes none.
        correlation_result_limit: Default maximum number of correlated logs.
        pattern_cache_ttl_seconds: Per-organization pattern cache lifetime.
        identifier_insert_batch_size: Upper bound on rows sent per bulk insert.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,  # Settings are immutable after initialization
    )

    # Identifier storage
    clickhouse_host: str = ""
    clickhouse_port: int = 8443
    clickhouse_database: str = "default"
    clickhouse_user: str = "default"
    clickhouse_password: str = ""
    clickhouse_secure: bool = True

    # Correlation
    correlation_time_window_minutes: int = Field(default=15, ge=0)
    correlation_result_limit: int = Field(default=100, ge=1)
    pattern_cache_ttl_seconds: float = Field(default=300.0, ge=0)
    identifier_insert_batch_size: int = Field(default=5000, ge=1)


# Create a single, importable instance of the settings
settings = Settings()
