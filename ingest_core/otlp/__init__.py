"""OTLP wire normalization and trace aggregation.

Decodes OpenTelemetry log and trace exports of any supported encoding into
immutable wire models, flattens logs into platform LogInputs, and folds spans
into per-trace summaries.

Example:
    >>> from ingest_core.otlp import parse_traces_request, aggregate_spans
    >>> export = parse_traces_request(body, "application/x-protobuf")
    >>> batch = aggregate_spans(export)
    >>> len(batch.traces)
"""

from ._models import (
    InstrumentationScope,
    LogRecord,
    LogsExport,
    Resource,
    ResourceLogs,
    ResourceSpans,
    ScopeLogs,
    ScopeSpans,
    Span,
    SpanEvent,
    SpanLink,
    Status,
    TracesExport,
)
from ._values import any_value_to_python, attributes_to_dict, extract_service_name, nanos_to_iso
from .parser import OtlpContentType, detect_content_type, parse_logs_request, parse_traces_request
from .severity import level_to_severity_number, map_severity_to_level
from .traces import (
    NormalizedSpan,
    NormalizedSpanEvent,
    NormalizedSpanLink,
    SpanBatch,
    SpanKind,
    SpanStatusCode,
    TraceSummary,
    aggregate_spans,
)
from .transformer import transform_logs

__all__ = [
    "InstrumentationScope",
    "LogRecord",
    "LogsExport",
    "NormalizedSpan",
    "NormalizedSpanEvent",
    "NormalizedSpanLink",
    "OtlpContentType",
    "Resource",
    "ResourceLogs",
    "ResourceSpans",
    "ScopeLogs",
    "ScopeSpans",
    "Span",
    "SpanBatch",
    "SpanEvent",
    "SpanKind",
    "SpanLink",
    "SpanStatusCode",
    "Status",
    "TraceSummary",
    "TracesExport",
    "aggregate_spans",
    "any_value_to_python",
    "attributes_to_dict",
    "detect_content_type",
    "extract_service_name",
    "level_to_severity_number",
    "map_severity_to_level",
    "nanos_to_iso",
    "parse_logs_request",
    "parse_traces_request",
    "transform_logs",
]
