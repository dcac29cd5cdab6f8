"""Exception hierarchy for Ingest Core.

All exceptions inherit from IngestCoreError. Only the wire normalizer raises
on the ingestion path: a malformed record inside an otherwise valid payload is
absorbed, never raised.
"""


class IngestCoreError(Exception):
    """Base exception for all Ingest Core errors."""


class WireFormatError(IngestCoreError):
    """Raised when a telemetry payload cannot be decoded at all."""


class InvalidBodyTypeError(WireFormatError):
    """Raised when the request body has a type the declared content type cannot carry."""


class InvalidOtlpJsonError(WireFormatError):
    """Raised when a log export body is not valid JSON."""


class InvalidOtlpTracesJsonError(InvalidOtlpJsonError):
    """Raised when a trace export body is not valid JSON."""


class DecompressionFailedError(WireFormatError):
    """Raised when a gzip-framed body fails to decompress."""


class ProtobufDecodeFailedError(WireFormatError):
    """Raised when a body is neither JSON nor a decodable protobuf export."""


class InvalidPatternError(IngestCoreError):
    """Raised when an identifier pattern is not a valid regular expression."""
