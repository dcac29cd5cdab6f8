"""Log correlation through shared identifiers.

Example:
    >>> from ingest_core.correlation import CorrelationService, MemoryIdentifierStore, MemoryLogStore
    >>> from ingest_core.records import LogInput
    >>> service = CorrelationService(MemoryIdentifierStore(), MemoryLogStore())
    >>> service.extract_identifiers(LogInput(message="req_id=abcd1234 failed"))
"""

from ._models import (
    CorrelatedIdentifier,
    CorrelationResult,
    IdentifierMatch,
    IdentifierPattern,
    LogIdentifierRow,
    LogMatch,
    LogRef,
    TimeWindow,
)
from .factory import create_correlation_service, create_identifier_store
from .memory import MemoryIdentifierStore, MemoryLogStore, MemoryPatternStore
from .patterns import DEFAULT_PATTERNS, PatternDefinition, validate_pattern
from .protocol import IdentifierStore, LogStore, PatternStore
from .registry import PatternRegistry
from .service import CorrelationService

__all__ = [
    "DEFAULT_PATTERNS",
    "CorrelatedIdentifier",
    "CorrelationResult",
    "CorrelationService",
    "IdentifierMatch",
    "IdentifierPattern",
    "IdentifierStore",
    "LogIdentifierRow",
    "LogMatch",
    "LogRef",
    "LogStore",
    "MemoryIdentifierStore",
    "MemoryLogStore",
    "MemoryPatternStore",
    "PatternDefinition",
    "PatternRegistry",
    "PatternStore",
    "TimeWindow",
    "create_correlation_service",
    "create_identifier_store",
    "validate_pattern",
]
