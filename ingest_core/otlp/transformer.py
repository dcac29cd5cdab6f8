"""Flatten a normalized OTLP log export into platform log inputs."""

import re
from typing import Any

from ingest_core.records import LogInput

from ._models import LogRecord, LogsExport
from ._values import (
    attributes_to_dict,
    extract_service_name,
    nanos_to_datetime,
    parse_nanos,
    render_body,
)
from .severity import map_severity_to_level

_ALL_ZEROS = re.compile(r"^0+$")


def transform_logs(export: LogsExport) -> list[LogInput]:
    """Turn every log record of an export into a LogInput, in export order.

    Resource attributes and the instrumentation scope are merged into each
    record's metadata; record attributes win on key collisions.
    """
    logs: list[LogInput] = []

    for resource_logs in export.resource_logs:
        resource_attrs = resource_logs.resource.attributes if resource_logs.resource else []
        service = extract_service_name(resource_attrs)
        resource_metadata = attributes_to_dict(resource_attrs)

        for scope_logs in resource_logs.scope_logs:
            scope_metadata: dict[str, Any] = {}
            if scope_logs.scope is not None:
                if scope_logs.scope.name:
                    scope_metadata["otel.scope.name"] = scope_logs.scope.name
                if scope_logs.scope.version:
                    scope_metadata["otel.scope.version"] = scope_logs.scope.version

            for record in scope_logs.log_records:
                logs.append(transform_log_record(record, service, {**resource_metadata, **scope_metadata}))

    return logs


def transform_log_record(record: LogRecord, service: str, base_metadata: dict[str, Any]) -> LogInput:
    """Convert one log record using its resource's service name and metadata."""
    metadata = {**base_metadata, **attributes_to_dict(record.attributes)}
    if record.severity_number is not None:
        metadata["otel.severity_number"] = record.severity_number
    if record.severity_text:
        metadata["otel.severity_text"] = record.severity_text

    timestamp = record.time_unix_nano if parse_nanos(record.time_unix_nano) is not None else record.observed_time_unix_nano

    return LogInput(
        time=nanos_to_datetime(timestamp),
        service=service,
        level=map_severity_to_level(record.severity_number, record.severity_text),
        message=render_body(record.body),
        metadata=metadata,
        trace_id=normalize_trace_id(record.trace_id),
        span_id=record.span_id or None,
    )


def normalize_trace_id(trace_id: str | None) -> str | None:
    """Return the trace id, or None when it is empty or the reserved all-zero value."""
    if not trace_id or _ALL_ZEROS.match(trace_id):
        return None
    return trace_id
