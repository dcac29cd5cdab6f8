"""Platform log record shapes shared by the normalizer and the correlation engine."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Every stored or compared timestamp is aware UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class LogLevel(StrEnum):
    """Platform log level."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    CRITICAL = "critical"


class LogInput(BaseModel):
    """A log as submitted for ingestion, before it has a storage identity."""

    model_config = ConfigDict(frozen=True)

    message: str = ""
    service: str = "unknown"
    level: LogLevel = LogLevel.INFO
    time: UtcDatetime | None = None
    metadata: dict[str, Any] | None = None
    trace_id: str | None = None
    span_id: str | None = None


class StoredLog(BaseModel):
    """A log after it was appended to the time-partitioned log store."""

    model_config = ConfigDict(frozen=True)

    id: str
    time: UtcDatetime
    project_id: str
    organization_id: str
    service: str
    level: LogLevel
    message: str
    metadata: dict[str, Any] | None = None
    trace_id: str | None = None
    span_id: str | None = None


class LogQuery(BaseModel):
    """Filter for the log store. Every bound is optional; None means unbounded."""

    model_config = ConfigDict(frozen=True)

    project_id: str | None = None
    log_ids: tuple[str, ...] | None = None
    time_from: UtcDatetime | None = None
    time_to: UtcDatetime | None = None
    limit: int | None = Field(default=None, ge=0)
