"""OTLP wire models for log and trace exports.

Every model accepts both the camelCase (OTLP/JSON) and snake_case (some
exporters, protobuf field names) spelling of each key through a single alias
generator, and dumps camelCase with ``to_dict()``.

Decoding never produces a partially-shaped object:
- a scalar field holding the wrong type decodes to None;
- a collection that is missing or not a list decodes to ``[]``;
- an array element that is not a valid object decodes to an empty placeholder,
  so array length (and therefore index correlation with parent arrays) is kept.

``AnyValue`` payloads (``body``, attribute values) are kept verbatim.
"""

from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    AliasGenerator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)
from pydantic.alias_generators import to_camel

_aliases = AliasGenerator(
    validation_alias=lambda name: AliasChoices(to_camel(name), name),
    serialization_alias=to_camel,
)


def _or_none(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    """Decode a scalar, falling back to None on a type mismatch."""
    try:
        return handler(value)
    except ValidationError:
        return None


def _or_placeholder(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    """Decode an array element, falling back to an empty placeholder."""
    if not isinstance(value, (dict, BaseModel)):
        return handler({})
    try:
        return handler(value)
    except ValidationError:
        return handler({})


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _as_dict_list(value: Any) -> list[dict[str, Any]]:
    return [item for item in _as_list(value) if isinstance(item, dict)]


def _as_dict_list_or_none(value: Any) -> list[dict[str, Any]] | None:
    if not isinstance(value, (list, tuple)):
        return None
    return _as_dict_list(value)


def _as_mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


_Placeholder = WrapValidator(_or_placeholder)
_ListOrEmpty = BeforeValidator(_as_list)

LenientStr = Annotated[str | None, WrapValidator(_or_none)]
LenientInt = Annotated[int | None, WrapValidator(_or_none)]
# Nanosecond timestamps arrive as decimal strings (JSON int64) or integers.
NanoTimestamp = Annotated[str | int | None, WrapValidator(_or_none)]
AnyValue = Annotated[dict[str, Any] | None, BeforeValidator(_as_mapping_or_none)]
KeyValueList = Annotated[list[dict[str, Any]], BeforeValidator(_as_dict_list)]
OptionalKeyValueList = Annotated[list[dict[str, Any]] | None, BeforeValidator(_as_dict_list_or_none)]


class OtlpModel(BaseModel):
    """Base for OTLP wire models: alias table, immutability, unknown keys ignored."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=_aliases,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Dump with camelCase keys, omitting unset optional scalars."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Resource(OtlpModel):
    """Entity producing telemetry."""

    attributes: KeyValueList = Field(default_factory=list)
    dropped_attributes_count: LenientInt = None


class InstrumentationScope(OtlpModel):
    """Instrumentation library that emitted the records."""

    name: LenientStr = None
    version: LenientStr = None
    attributes: KeyValueList = Field(default_factory=list)


ResourceField = Annotated[Resource | None, BeforeValidator(_as_mapping_or_none)]
ScopeField = Annotated[InstrumentationScope | None, BeforeValidator(_as_mapping_or_none)]


# --- Logs ---


class LogRecord(OtlpModel):
    """Normalized log record. ``body`` is passed through verbatim."""

    time_unix_nano: NanoTimestamp = None
    observed_time_unix_nano: NanoTimestamp = None
    severity_number: LenientInt = None
    severity_text: LenientStr = None
    body: AnyValue = None
    attributes: KeyValueList = Field(default_factory=list)
    dropped_attributes_count: LenientInt = None
    flags: LenientInt = None
    trace_id: LenientStr = None
    span_id: LenientStr = None


LogRecordList = Annotated[list[Annotated[LogRecord, _Placeholder]], _ListOrEmpty]


class ScopeLogs(OtlpModel):
    """Log records from one instrumentation scope."""

    scope: ScopeField = None
    log_records: LogRecordList = Field(default_factory=list)
    schema_url: LenientStr = None


ScopeLogsList = Annotated[list[Annotated[ScopeLogs, _Placeholder]], _ListOrEmpty]


class ResourceLogs(OtlpModel):
    """Log records from one resource."""

    resource: ResourceField = None
    scope_logs: ScopeLogsList = Field(default_factory=list)
    schema_url: LenientStr = None


ResourceLogsList = Annotated[list[Annotated[ResourceLogs, _Placeholder]], _ListOrEmpty]


class LogsExport(OtlpModel):
    """Top-level normalized log export."""

    resource_logs: ResourceLogsList = Field(default_factory=list)


# --- Traces ---


class Status(OtlpModel):
    """Span status as sent on the wire."""

    code: LenientInt = None
    message: LenientStr = None


StatusField = Annotated[Status | None, BeforeValidator(_as_mapping_or_none)]


class SpanEvent(OtlpModel):
    """Timestamped annotation on a span."""

    time_unix_nano: NanoTimestamp = None
    name: LenientStr = None
    attributes: OptionalKeyValueList = None
    dropped_attributes_count: LenientInt = None


class SpanLink(OtlpModel):
    """Reference from a span to another span."""

    trace_id: LenientStr = None
    span_id: LenientStr = None
    trace_state: LenientStr = None
    attributes: OptionalKeyValueList = None
    dropped_attributes_count: LenientInt = None


SpanEventList = Annotated[list[Annotated[SpanEvent, _Placeholder]], _ListOrEmpty]
SpanLinkList = Annotated[list[Annotated[SpanLink, _Placeholder]], _ListOrEmpty]


class Span(OtlpModel):
    """Span as decoded from the wire, before validation and mapping."""

    trace_id: LenientStr = None
    span_id: LenientStr = None
    trace_state: LenientStr = None
    parent_span_id: LenientStr = None
    name: LenientStr = None
    kind: LenientInt = None
    start_time_unix_nano: NanoTimestamp = None
    end_time_unix_nano: NanoTimestamp = None
    attributes: KeyValueList = Field(default_factory=list)
    events: SpanEventList = Field(default_factory=list)
    links: SpanLinkList = Field(default_factory=list)
    status: StatusField = None


SpanList = Annotated[list[Annotated[Span, _Placeholder]], _ListOrEmpty]


class ScopeSpans(OtlpModel):
    """Spans from one instrumentation scope."""

    scope: ScopeField = None
    spans: SpanList = Field(default_factory=list)
    schema_url: LenientStr = None


ScopeSpansList = Annotated[list[Annotated[ScopeSpans, _Placeholder]], _ListOrEmpty]


class ResourceSpans(OtlpModel):
    """Spans from one resource."""

    resource: ResourceField = None
    scope_spans: ScopeSpansList = Field(default_factory=list)
    schema_url: LenientStr = None


ResourceSpansList = Annotated[list[Annotated[ResourceSpans, _Placeholder]], _ListOrEmpty]


class TracesExport(OtlpModel):
    """Top-level normalized trace export."""

    resource_spans: ResourceSpansList = Field(default_factory=list)
