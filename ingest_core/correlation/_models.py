"""Correlation data model: identifier matches, persisted rows and query results."""

from pydantic import BaseModel, ConfigDict, Field

from ingest_core.records import StoredLog, UtcDatetime

UNKNOWN_IDENTIFIER_TYPE = "unknown"


class IdentifierMatch(BaseModel):
    """An identifier found in one log.

    ``type`` is a pattern name (built-in such as ``uuid`` or tenant-defined),
    ``source_field`` the dotted path it came from (``message``,
    ``metadata.context.user_id``).
    """

    model_config = ConfigDict(frozen=True)

    type: str
    value: str
    source_field: str


class LogRef(BaseModel):
    """Storage identity of a log, enough to key identifier rows."""

    model_config = ConfigDict(frozen=True)

    id: str
    time: UtcDatetime
    project_id: str
    organization_id: str


class LogIdentifierRow(BaseModel):
    """One persisted identifier occurrence. Many rows per log, never mutated.

    ``log_time`` duplicates the log's timestamp so that lookups can be pruned
    by time partition.
    """

    model_config = ConfigDict(frozen=True)

    log_id: str
    log_time: UtcDatetime
    project_id: str
    organization_id: str
    identifier_type: str
    identifier_value: str
    source_field: str

    def to_match(self) -> IdentifierMatch:
        return IdentifierMatch(type=self.identifier_type, value=self.identifier_value, source_field=self.source_field)


class LogMatch(BaseModel):
    """A log that carries a searched identifier value, one per log."""

    model_config = ConfigDict(frozen=True)

    log_id: str
    log_time: UtcDatetime
    identifier_type: str


class IdentifierPattern(BaseModel):
    """Tenant-defined identifier pattern as kept by the pattern store."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    organization_id: str
    name: str
    display_name: str = ""
    description: str | None = None
    pattern: str
    field_names: tuple[str, ...] = ()
    enabled: bool = True
    priority: int = 50


class CorrelatedIdentifier(BaseModel):
    """Identifier a correlation query was answered for."""

    model_config = ConfigDict(frozen=True)

    type: str
    value: str


class TimeWindow(BaseModel):
    """Closed time range searched by a correlation query."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: UtcDatetime = Field(alias="from")
    to: UtcDatetime


class CorrelationResult(BaseModel):
    """Logs sharing one identifier value around a reference time.

    ``total`` counts every matching log in the window; ``logs`` holds at most
    ``limit`` of them in chronological order.
    """

    model_config = ConfigDict(frozen=True)

    identifier: CorrelatedIdentifier
    logs: list[StoredLog] = Field(default_factory=list)
    total: int = 0
    time_window: TimeWindow
