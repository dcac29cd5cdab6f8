"""Conversion helpers for OTLP attribute values and timestamps."""

import json
from datetime import UTC, datetime, timedelta
from typing import Any

UNKNOWN_SERVICE = "unknown"

_NANOS_PER_MILLI = 1_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def strip_null_bytes(value: str) -> str:
    """Remove NUL characters, which text columns in the log store cannot hold."""
    return value.replace("\x00", "")


def any_value_to_python(value: Any) -> Any:
    """Convert an OTLP AnyValue mapping to a plain Python value.

    int64 values encoded as strings become ints; arrays become lists and
    kvlists become dicts. Unrecognized or missing values become None.
    """
    if not isinstance(value, dict):
        return None

    if "stringValue" in value:
        return strip_null_bytes(str(value["stringValue"]))
    if "boolValue" in value:
        return bool(value["boolValue"])
    if "intValue" in value:
        return _to_int(value["intValue"])
    if "doubleValue" in value:
        return value["doubleValue"]
    if "bytesValue" in value:
        return value["bytesValue"]

    array = value.get("arrayValue")
    if isinstance(array, dict) and isinstance(array.get("values"), list):
        return [any_value_to_python(item) for item in array["values"]]

    kvlist = value.get("kvlistValue")
    if isinstance(kvlist, dict) and isinstance(kvlist.get("values"), list):
        return attributes_to_dict(kvlist["values"])

    return None


def attributes_to_dict(attributes: list[dict[str, Any]] | None) -> dict[str, Any]:
    """Convert an OTLP KeyValue list to a dict. Entries without a string key are skipped."""
    result: dict[str, Any] = {}
    for attr in attributes or []:
        if not isinstance(attr, dict):
            continue
        key = attr.get("key")
        if isinstance(key, str):
            result[key] = any_value_to_python(attr.get("value"))
    return result


def extract_service_name(attributes: list[dict[str, Any]] | None) -> str:
    """Return the first ``service.name`` attribute that carries a string value."""
    for attr in attributes or []:
        if not isinstance(attr, dict) or attr.get("key") != "service.name":
            continue
        value = attr.get("value")
        if isinstance(value, dict):
            string_value = value.get("stringValue")
            if isinstance(string_value, str) and string_value:
                return strip_null_bytes(string_value)
    return UNKNOWN_SERVICE


def parse_nanos(nanos: str | int | None) -> int | None:
    """Parse a nanosecond timestamp. Missing, zero, or malformed values give None."""
    if nanos is None or isinstance(nanos, bool):
        return None
    if isinstance(nanos, int):
        return nanos or None
    try:
        parsed = int(nanos.strip())
    except (AttributeError, ValueError):
        return None
    return parsed or None


def nanos_to_datetime(nanos: str | int | None) -> datetime:
    """Convert nanoseconds since the epoch to an aware UTC datetime (millisecond precision).

    Falls back to the current time when the value is missing or unparsable.
    """
    parsed = parse_nanos(nanos)
    if parsed is None:
        return datetime.now(UTC)
    try:
        return _EPOCH + timedelta(milliseconds=parsed // _NANOS_PER_MILLI)
    except OverflowError:
        return datetime.now(UTC)


def format_iso(moment: datetime) -> str:
    """Format as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def nanos_to_iso(nanos: str | int | None) -> str:
    """ISO-8601 rendering of a nanosecond timestamp, now when unparsable."""
    return format_iso(nanos_to_datetime(nanos))


def duration_ms(start_nanos: str | int | None, end_nanos: str | int | None) -> int:
    """Whole milliseconds between two nanosecond timestamps, truncated toward zero.

    Returns 0 when either bound is missing or unparsable.
    """
    start = parse_nanos(start_nanos)
    end = parse_nanos(end_nanos)
    if start is None or end is None:
        return 0
    delta = end - start
    millis = abs(delta) // _NANOS_PER_MILLI
    return millis if delta >= 0 else -millis


def render_body(body: dict[str, Any] | None) -> str:
    """Render a log record body as message text."""
    if not body:
        return ""

    if "stringValue" in body:
        return strip_null_bytes(str(body["stringValue"]))
    if "intValue" in body:
        return str(body["intValue"])
    if "doubleValue" in body:
        return str(body["doubleValue"])
    if "boolValue" in body:
        return "true" if body["boolValue"] else "false"

    array = body.get("arrayValue")
    if isinstance(array, dict) and isinstance(array.get("values"), list):
        return json.dumps([render_body(item if isinstance(item, dict) else None) for item in array["values"]])

    kvlist = body.get("kvlistValue")
    if isinstance(kvlist, dict) and isinstance(kvlist.get("values"), list):
        return json.dumps(attributes_to_dict(kvlist["values"]))

    if "bytesValue" in body:
        return f"[bytes: {body['bytesValue']}]"

    return ""


def _to_int(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            return None
    return value
