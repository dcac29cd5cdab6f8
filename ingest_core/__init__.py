"""Ingest Core: telemetry normalization, exception fingerprinting and log correlation.

Subpackages:
    otlp: OTLP log and trace decoding, log transformation, span aggregation
    error_tracking: exception fingerprints and error groups
    correlation: identifier extraction, storage and correlated-log queries
"""

from . import correlation, error_tracking, otlp
from .exceptions import (
    DecompressionFailedError,
    IngestCoreError,
    InvalidBodyTypeError,
    InvalidOtlpJsonError,
    InvalidOtlpTracesJsonError,
    InvalidPatternError,
    ProtobufDecodeFailedError,
    WireFormatError,
)
from .ingestion import IngestionService
from .logging import LoggingConfig, get_ingest_logger, setup_logging
from .records import LogInput, LogLevel, LogQuery, StoredLog
from .settings import Settings, settings

__version__ = "0.1.0"

__all__ = [
    "DecompressionFailedError",
    "IngestCoreError",
    "IngestionService",
    "InvalidBodyTypeError",
    "InvalidOtlpJsonError",
    "InvalidOtlpTracesJsonError",
    "InvalidPatternError",
    "LogInput",
    "LogLevel",
    "LogQuery",
    "LoggingConfig",
    "ProtobufDecodeFailedError",
    "Settings",
    "StoredLog",
    "WireFormatError",
    "correlation",
    "error_tracking",
    "get_ingest_logger",
    "otlp",
    "settings",
    "setup_logging",
]
