"""Payload builders shared across test modules."""

import gzip
import json
from typing import Any

TRACE_ID = "5b8efff798038103d269b633813fc60c"
SPAN_ID = "eee19b7ec3c1b174"


def make_logs_export(records: list[Any], service: str = "checkout") -> dict[str, Any]:
    """OTLP/JSON log export with one resource and one scope."""
    return {
        "resourceLogs": [
            {
                "resource": {"attributes": [{"key": "service.name", "value": {"stringValue": service}}]},
                "scopeLogs": [{"scope": {"name": "app.logger", "version": "1.0.0"}, "logRecords": records}],
            }
        ]
    }


def make_traces_export(spans: list[Any], service: str = "checkout") -> dict[str, Any]:
    """OTLP/JSON trace export with one resource and one scope."""
    return {
        "resourceSpans": [
            {
                "resource": {"attributes": [{"key": "service.name", "value": {"stringValue": service}}]},
                "scopeSpans": [{"scope": {"name": "app.tracer"}, "spans": spans}],
            }
        ]
    }


def make_span(**overrides: Any) -> dict[str, Any]:
    span: dict[str, Any] = {
        "traceId": TRACE_ID,
        "spanId": SPAN_ID,
        "name": "GET /orders",
        "kind": 2,
        "startTimeUnixNano": "1700000000000000000",
        "endTimeUnixNano": "1700000000250000000",
        "attributes": [{"key": "http.method", "value": {"stringValue": "GET"}}],
        "status": {"code": 1},
    }
    span.update(overrides)
    return span


def gzip_json(payload: dict[str, Any]) -> bytes:
    return gzip.compress(json.dumps(payload).encode("utf-8"))
