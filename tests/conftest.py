"""Common test fixtures for ingest_core."""

import pytest

from ingest_core.correlation import (
    CorrelationService,
    MemoryIdentifierStore,
    MemoryLogStore,
    MemoryPatternStore,
    PatternRegistry,
)


@pytest.fixture
def identifier_store() -> MemoryIdentifierStore:
    return MemoryIdentifierStore()


@pytest.fixture
def log_store() -> MemoryLogStore:
    return MemoryLogStore()


@pytest.fixture
def pattern_store() -> MemoryPatternStore:
    return MemoryPatternStore()


@pytest.fixture
def correlation_service(
    identifier_store: MemoryIdentifierStore,
    log_store: MemoryLogStore,
    pattern_store: MemoryPatternStore,
) -> CorrelationService:
    return CorrelationService(identifier_store, log_store, PatternRegistry(pattern_store))
