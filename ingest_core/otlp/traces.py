"""Span normalization and per-trace aggregation.

aggregate_spans() walks a normalized trace export once, drops spans that cannot
be placed in a trace graph (missing ids, all-zero trace id), maps wire enums
to closed string sets, and folds the surviving spans into one TraceSummary per
trace id. It never raises on span content.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from ._models import Span, SpanEvent, SpanLink, TracesExport
from ._values import (
    attributes_to_dict,
    duration_ms,
    extract_service_name,
    format_iso,
    nanos_to_datetime,
    strip_null_bytes,
)

_ALL_ZEROS = re.compile(r"^0+$")

UNKNOWN_OPERATION = "unknown"
DEFAULT_EVENT_NAME = "event"


class SpanKind(StrEnum):
    """Role of a span in its trace. Wire value 0 (UNSPECIFIED) has no member."""

    INTERNAL = "INTERNAL"
    SERVER = "SERVER"
    CLIENT = "CLIENT"
    PRODUCER = "PRODUCER"
    CONSUMER = "CONSUMER"


class SpanStatusCode(StrEnum):
    """Span outcome. Wire value 0 (UNSET) has no member."""

    OK = "OK"
    ERROR = "ERROR"


_SPAN_KINDS = {
    1: SpanKind.INTERNAL,
    2: SpanKind.SERVER,
    3: SpanKind.CLIENT,
    4: SpanKind.PRODUCER,
    5: SpanKind.CONSUMER,
}

_STATUS_CODES = {
    1: SpanStatusCode.OK,
    2: SpanStatusCode.ERROR,
}


class NormalizedSpanEvent(BaseModel):
    """Span event with an ISO-8601 time."""

    model_config = ConfigDict(frozen=True)

    name: str
    time: str
    attributes: dict[str, Any] | None = None


class NormalizedSpanLink(BaseModel):
    """Link to another span."""

    model_config = ConfigDict(frozen=True)

    trace_id: str
    span_id: str
    attributes: dict[str, Any] | None = None


class NormalizedSpan(BaseModel):
    """Validated span ready for storage.

    ``kind`` and ``status_code`` are None when the wire carried no information.
    ``events`` and ``links`` are None when the span recorded none.
    """

    model_config = ConfigDict(frozen=True)

    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    service_name: str
    operation_name: str
    start_time: str
    end_time: str
    duration_ms: int
    kind: SpanKind | None = None
    status_code: SpanStatusCode | None = None
    status_message: str | None = None
    attributes: dict[str, Any]
    resource_attributes: dict[str, Any]
    events: list[NormalizedSpanEvent] | None = None
    links: list[NormalizedSpanLink] | None = None


@dataclass(slots=True)
class TraceSummary:
    """Per-trace rollup built while aggregating one export."""

    trace_id: str
    service_name: str
    start_time: str
    end_time: str
    duration_ms: int
    span_count: int = 1
    root_service_name: str | None = None
    root_operation_name: str | None = None
    error: bool = False


@dataclass(slots=True)
class SpanBatch:
    """Output of aggregate_spans: valid spans in export order plus trace summaries."""

    spans: list[NormalizedSpan] = field(default_factory=list)
    traces: dict[str, TraceSummary] = field(default_factory=dict)


def aggregate_spans(export: TracesExport) -> SpanBatch:
    """Normalize every valid span of an export and summarize each trace.

    The summary map is local to this call.
    """
    batch = SpanBatch()

    for resource_spans in export.resource_spans:
        resource_attrs = resource_spans.resource.attributes if resource_spans.resource else []
        service_name = extract_service_name(resource_attrs)
        resource_attributes = attributes_to_dict(resource_attrs)

        for scope_spans in resource_spans.scope_spans:
            for span in scope_spans.spans:
                normalized = normalize_span(span, service_name, resource_attributes)
                if normalized is None:
                    continue
                batch.spans.append(normalized)
                _update_trace(batch.traces, normalized)

    return batch


def is_valid_span(span: Span) -> bool:
    """A span needs a trace id, a span id, and a trace id that is not all zeros."""
    if not span.trace_id or not span.span_id:
        return False
    return not _ALL_ZEROS.match(span.trace_id)


def normalize_span(span: Span, service_name: str, resource_attributes: dict[str, Any]) -> NormalizedSpan | None:
    """Map a wire span to a NormalizedSpan, or None when it fails the validity gate."""
    if not is_valid_span(span):
        return None
    assert span.trace_id is not None and span.span_id is not None

    status = span.status
    return NormalizedSpan(
        trace_id=span.trace_id,
        span_id=span.span_id,
        parent_span_id=span.parent_span_id or None,
        service_name=service_name,
        operation_name=strip_null_bytes(span.name or UNKNOWN_OPERATION),
        start_time=format_iso(nanos_to_datetime(span.start_time_unix_nano)),
        end_time=format_iso(nanos_to_datetime(span.end_time_unix_nano)),
        duration_ms=duration_ms(span.start_time_unix_nano, span.end_time_unix_nano),
        kind=map_span_kind(span.kind),
        status_code=map_status_code(status.code if status else None),
        status_message=strip_null_bytes(status.message) if status and status.message else None,
        attributes=attributes_to_dict(span.attributes),
        resource_attributes=resource_attributes,
        events=transform_events(span.events),
        links=transform_links(span.links),
    )


def map_span_kind(kind: int | None) -> SpanKind | None:
    return _SPAN_KINDS.get(kind) if kind is not None else None


def map_status_code(code: int | None) -> SpanStatusCode | None:
    return _STATUS_CODES.get(code) if code is not None else None


def transform_events(events: list[SpanEvent]) -> list[NormalizedSpanEvent] | None:
    if not events:
        return None
    return [
        NormalizedSpanEvent(
            name=strip_null_bytes(event.name or DEFAULT_EVENT_NAME),
            time=format_iso(nanos_to_datetime(event.time_unix_nano)),
            attributes=attributes_to_dict(event.attributes) if event.attributes is not None else None,
        )
        for event in events
    ]


def transform_links(links: list[SpanLink]) -> list[NormalizedSpanLink] | None:
    """Convert links, skipping any without both ids."""
    if not links:
        return None
    return [
        NormalizedSpanLink(
            trace_id=link.trace_id,
            span_id=link.span_id,
            attributes=attributes_to_dict(link.attributes) if link.attributes is not None else None,
        )
        for link in links
        if link.trace_id and link.span_id
    ]


def _update_trace(traces: dict[str, TraceSummary], span: NormalizedSpan) -> None:
    is_root = not span.parent_span_id
    is_error = span.status_code is SpanStatusCode.ERROR

    summary = traces.get(span.trace_id)
    if summary is None:
        traces[span.trace_id] = TraceSummary(
            trace_id=span.trace_id,
            service_name=span.service_name,
            start_time=span.start_time,
            end_time=span.end_time,
            duration_ms=span.duration_ms,
            root_service_name=span.service_name if is_root else None,
            root_operation_name=span.operation_name if is_root else None,
            error=is_error,
        )
        return

    if _parse_iso(span.start_time) < _parse_iso(summary.start_time):
        summary.start_time = span.start_time
    if _parse_iso(span.end_time) > _parse_iso(summary.end_time):
        summary.end_time = span.end_time
    window = _parse_iso(summary.end_time) - _parse_iso(summary.start_time)
    summary.duration_ms = window // timedelta(milliseconds=1)

    summary.span_count += 1

    if is_root:
        summary.root_service_name = span.service_name
        summary.root_operation_name = span.operation_name

    if is_error:
        summary.error = True


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
