"""Tests for the per-organization pattern registry."""

import pytest

from ingest_core.correlation import DEFAULT_PATTERNS, IdentifierPattern, MemoryPatternStore, PatternRegistry
from ingest_core.exceptions import InvalidPatternError


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingPatternStore(MemoryPatternStore):
    def __init__(self, *patterns: IdentifierPattern) -> None:
        super().__init__(patterns)
        self.calls = 0

    async def list_patterns(self, organization_id: str) -> list[IdentifierPattern]:
        self.calls += 1
        return await super().list_patterns(organization_id)


class FailingPatternStore:
    def __init__(self) -> None:
        self.calls = 0

    async def list_patterns(self, organization_id: str) -> list[IdentifierPattern]:
        self.calls += 1
        raise ConnectionError("pattern database unavailable")


def _custom(name: str = "customer_id", pattern: str = r"\bCUST-([A-Z0-9]+)\b", **kwargs: object) -> IdentifierPattern:
    return IdentifierPattern.model_validate({"organization_id": "org-1", "name": name, "pattern": pattern, **kwargs})


class TestGetPatternsForOrg:
    @pytest.mark.asyncio
    async def test_without_store_returns_built_ins(self):
        patterns = await PatternRegistry().get_patterns_for_org("org-1")
        assert patterns == list(DEFAULT_PATTERNS)

    @pytest.mark.asyncio
    async def test_custom_patterns_are_merged_by_priority(self):
        registry = PatternRegistry(MemoryPatternStore([_custom(priority=10)]))

        patterns = await registry.get_patterns_for_org("org-1")

        assert len(patterns) == len(DEFAULT_PATTERNS) + 1
        assert patterns[0].type == "customer_id"
        assert patterns[0].is_built_in is False
        assert [p.priority for p in patterns] == sorted(p.priority for p in patterns)

    @pytest.mark.asyncio
    async def test_other_organizations_are_not_affected(self):
        registry = PatternRegistry(MemoryPatternStore([_custom()]))
        patterns = await registry.get_patterns_for_org("org-2")
        assert all(p.is_built_in for p in patterns)

    @pytest.mark.asyncio
    async def test_disabled_and_invalid_patterns_are_skipped(self):
        registry = PatternRegistry(
            MemoryPatternStore([
                _custom("disabled", enabled=False),
                _custom("broken", pattern="(unclosed"),
                _custom("valid"),
            ])
        )

        custom = [p.type for p in await registry.get_patterns_for_org("org-1") if not p.is_built_in]

        assert custom == ["valid"]

    @pytest.mark.asyncio
    async def test_results_are_cached_until_ttl(self):
        clock = FakeClock()
        store = CountingPatternStore(_custom())
        registry = PatternRegistry(store, cache_ttl_seconds=60, clock=clock)

        await registry.get_patterns_for_org("org-1")
        await registry.get_patterns_for_org("org-1")
        assert store.calls == 1

        clock.now += 61
        await registry.get_patterns_for_org("org-1")
        assert store.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_cache(self):
        store = CountingPatternStore(_custom())
        registry = PatternRegistry(store)

        await registry.get_patterns_for_org("org-1")
        registry.invalidate_cache("org-1")
        await registry.get_patterns_for_org("org-1")

        assert store.calls == 2

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_built_ins_without_caching(self):
        store = FailingPatternStore()
        registry = PatternRegistry(store)

        assert await registry.get_patterns_for_org("org-1") == list(DEFAULT_PATTERNS)
        await registry.get_patterns_for_org("org-1")

        assert store.calls == 2


class TestPatternTools:
    def test_validate_pattern(self):
        assert PatternRegistry.validate_pattern(r"\bINV-\d+\b") is True
        assert PatternRegistry.validate_pattern("[unterminated") is False

    def test_test_pattern_returns_group_values(self):
        assert PatternRegistry.test_pattern(r"order-(\d+)", "order-1 and ORDER-22") == ["1", "22"]

    def test_test_pattern_without_group_returns_whole_match(self):
        assert PatternRegistry.test_pattern(r"INV-\d+", "INV-1 INV-2") == ["INV-1", "INV-2"]

    def test_test_pattern_caps_matches(self):
        assert len(PatternRegistry.test_pattern(r"x", "x" * 500)) == 100

    def test_test_pattern_invalid_regex(self):
        with pytest.raises(InvalidPatternError):
            PatternRegistry.test_pattern("(", "text")
