"""Per-organization identifier pattern registry.

Merges tenant patterns from a PatternStore with the built-in patterns and
caches the merged list per organization for a fixed TTL. A failing store
never fails extraction: the built-ins are returned and nothing is cached, so
the next call retries the store.
"""

import time
from collections.abc import Callable

from ingest_core.exceptions import InvalidPatternError
from ingest_core.logging import get_ingest_logger

from ._models import IdentifierPattern
from .patterns import DEFAULT_PATTERNS, PatternDefinition, compile_pattern, test_pattern, validate_pattern
from .protocol import PatternStore

logger = get_ingest_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0


class PatternRegistry:
    """Resolves the identifier patterns that apply to an organization."""

    validate_pattern = staticmethod(validate_pattern)
    test_pattern = staticmethod(test_pattern)

    def __init__(
        self,
        store: PatternStore | None = None,
        *,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = cache_ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[float, list[PatternDefinition]]] = {}  # org -> (expires_at, patterns)

    @staticmethod
    def default_patterns() -> list[PatternDefinition]:
        """Built-in patterns in declaration order."""
        return list(DEFAULT_PATTERNS)

    async def get_patterns_for_org(self, organization_id: str) -> list[PatternDefinition]:
        """Built-in plus enabled tenant patterns, sorted by priority (lowest first)."""
        if self._store is None:
            return self.default_patterns()

        cached = self._cache.get(organization_id)
        if cached is not None and self._clock() < cached[0]:
            return cached[1]

        try:
            custom = await self._store.list_patterns(organization_id)
        except Exception as e:
            logger.warning(f"Failed to load identifier patterns for organization {organization_id}: {e}")
            return self.default_patterns()

        patterns = _merge(custom)
        self._cache[organization_id] = (self._clock() + self._ttl, patterns)
        return patterns

    def invalidate_cache(self, organization_id: str) -> None:
        """Drop the cached patterns of an organization, e.g. after its patterns changed."""
        self._cache.pop(organization_id, None)


def _merge(custom: list[IdentifierPattern]) -> list[PatternDefinition]:
    patterns: list[PatternDefinition] = []

    for entry in sorted(custom, key=lambda p: p.priority):
        if not entry.enabled:
            continue
        try:
            compiled = compile_pattern(entry.pattern)
        except InvalidPatternError as e:
            logger.warning(f"Skipping identifier pattern '{entry.name}': {e}")
            continue
        patterns.append(
            PatternDefinition(
                type=entry.name,
                display_name=entry.display_name or entry.name,
                pattern=compiled,
                priority=entry.priority,
                field_names=entry.field_names,
                is_built_in=False,
            )
        )

    patterns.extend(DEFAULT_PATTERNS)
    # Stable: on equal priority, tenant patterns stay ahead of built-ins.
    patterns.sort(key=lambda p: p.priority)
    return patterns
