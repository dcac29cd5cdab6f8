"""OTLP request parsing for log and trace exports.

Turns a raw request body plus its declared Content-Type into a normalized
LogsExport / TracesExport. JSON and protobuf encodings are both accepted, and
many exporters mislabel one as the other, so a protobuf-declared body is tried
as JSON first.

Only four outcomes abort a payload: wrong body type, malformed JSON text,
corrupt gzip, and undecodable protobuf. Everything below the top level is
repaired by the wire models.
"""

import base64
import binascii
import gzip
import json
import zlib
from enum import StrEnum
from typing import Any

from google.protobuf.json_format import MessageToDict
from google.protobuf.message import DecodeError, Message
from opentelemetry.proto.collector.logs.v1.logs_service_pb2 import ExportLogsServiceRequest
from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import ExportTraceServiceRequest

from ingest_core.exceptions import (
    DecompressionFailedError,
    InvalidBodyTypeError,
    InvalidOtlpJsonError,
    InvalidOtlpTracesJsonError,
    ProtobufDecodeFailedError,
)
from ingest_core.logging import get_ingest_logger

from ._models import LogsExport, TracesExport

logger = get_ingest_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

# Binary id fields that OTLP/JSON carries as lowercase hex instead of base64.
_HEX_ID_KEYS = frozenset({"traceId", "spanId", "parentSpanId"})

_BINARY_TYPES = (bytes, bytearray, memoryview)


class OtlpContentType(StrEnum):
    """Wire encoding classified from a Content-Type header."""

    JSON = "json"
    PROTOBUF = "protobuf"
    UNKNOWN = "unknown"


def detect_content_type(content_type: str | None) -> OtlpContentType:
    """Classify a Content-Type header value.

    ``application/json*`` is JSON, ``application/protobuf`` and
    ``application/x-protobuf`` are protobuf (case-insensitive, parameters
    ignored). Anything else, including a missing header, is UNKNOWN.
    """
    if not content_type:
        return OtlpContentType.UNKNOWN

    normalized = content_type.lower()

    if "application/json" in normalized:
        return OtlpContentType.JSON

    if "application/x-protobuf" in normalized or "application/protobuf" in normalized:
        return OtlpContentType.PROTOBUF

    return OtlpContentType.UNKNOWN


def parse_logs_request(body: Any, content_type: str | None = None) -> LogsExport:
    """Parse an OTLP log export body.

    Args:
        body: Raw request body: bytes, a JSON string, or an already-decoded mapping.
        content_type: Declared Content-Type header, if any.

    Returns:
        Normalized log export. Record arrays keep their original length.

    Raises:
        InvalidBodyTypeError: Protobuf declared for a non-binary body, or an
            unsupported body type.
        InvalidOtlpJsonError: Body text is not valid JSON.
        DecompressionFailedError: Body starts with the gzip magic but is corrupt.
        ProtobufDecodeFailedError: Protobuf body is neither JSON nor a valid export.
    """
    data = _decode_body(body, content_type, ExportLogsServiceRequest, InvalidOtlpJsonError, "OTLP JSON")
    return LogsExport.model_validate(data)


def parse_traces_request(body: Any, content_type: str | None = None) -> TracesExport:
    """Parse an OTLP trace export body.

    Same decoding rules as parse_logs_request; JSON failures raise
    InvalidOtlpTracesJsonError.
    """
    data = _decode_body(body, content_type, ExportTraceServiceRequest, InvalidOtlpTracesJsonError, "OTLP Traces JSON")
    return TracesExport.model_validate(data)


def _decode_body(
    body: Any,
    content_type: str | None,
    proto_type: type[Message],
    json_error: type[InvalidOtlpJsonError],
    label: str,
) -> dict[str, Any]:
    """Reduce any accepted body to a plain dict ready for model validation."""
    kind = detect_content_type(content_type)

    if kind is OtlpContentType.UNKNOWN and content_type:
        logger.warning(f"Unknown content type '{content_type}', attempting JSON parse")

    if kind is OtlpContentType.PROTOBUF:
        if not isinstance(body, _BINARY_TYPES):
            raise InvalidBodyTypeError("Protobuf content-type requires a binary body")
        return _decode_protobuf_body(bytes(body), proto_type)

    return _decode_json_body(body, json_error, label)


def _decode_json_body(body: Any, json_error: type[InvalidOtlpJsonError], label: str) -> dict[str, Any]:
    if body is None:
        return {}

    if isinstance(body, dict):
        return body

    if isinstance(body, list):
        return {}

    if isinstance(body, _BINARY_TYPES):
        raw = maybe_decompress(bytes(body))
        if not raw:
            return {}
        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise json_error(f"Invalid {label}: {e}") from e

    if isinstance(body, str):
        if not body.strip():
            return {}
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as e:
            raise json_error(f"Invalid {label}: {e}") from e
        return parsed if isinstance(parsed, dict) else {}

    raise InvalidBodyTypeError(f"Invalid {label} request body type: {type(body).__name__}")


def _decode_protobuf_body(raw: bytes, proto_type: type[Message]) -> dict[str, Any]:
    raw = maybe_decompress(raw)

    # Exporters frequently send JSON under a protobuf content type.
    mislabeled = _try_json(raw)
    if mislabeled is not None:
        logger.debug("Protobuf-declared body decoded as JSON")
        return mislabeled

    try:
        message = proto_type.FromString(raw)
    except DecodeError as e:
        raise ProtobufDecodeFailedError(f"Failed to decode OTLP protobuf: {e}") from e

    data = MessageToDict(message, use_integers_for_enums=True)
    return _hex_encode_ids(data)


def maybe_decompress(raw: bytes) -> bytes:
    """Gunzip the payload when it starts with the gzip magic bytes.

    Detection is by content, not by Content-Encoding, since some exporters
    compress without declaring it.

    Raises:
        DecompressionFailedError: The payload is gzip-framed but corrupt.
    """
    if not raw.startswith(GZIP_MAGIC):
        return raw
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise DecompressionFailedError(f"Failed to decompress gzip body: {e}") from e


def _try_json(raw: bytes) -> dict[str, Any] | None:
    """Return the decoded JSON document, or None when raw is not JSON text."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list):
        return {}
    return None


def _hex_encode_ids(value: Any) -> Any:
    """Rewrite base64 id fields from MessageToDict as lowercase hex, recursively."""
    if isinstance(value, dict):
        result: dict[str, Any] = {}
        for key, item in value.items():
            if key in _HEX_ID_KEYS and isinstance(item, str):
                result[key] = _base64_to_hex(item)
            else:
                result[key] = _hex_encode_ids(item)
        return result
    if isinstance(value, list):
        return [_hex_encode_ids(item) for item in value]
    return value


def _base64_to_hex(value: str) -> str:
    try:
        return base64.b64decode(value, validate=True).hex()
    except (binascii.Error, ValueError):
        return value
