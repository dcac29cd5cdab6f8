"""Built-in identifier patterns and the pattern-matching primitives.

Patterns are matched case-insensitively. A match yields its first capture
group, or the whole match when the pattern has no group (or the group is
empty). Lower priority numbers are checked first once patterns are merged.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple

from ingest_core.exceptions import InvalidPatternError

MAX_TEST_MATCHES = 100


@dataclass(frozen=True, slots=True)
class PatternDefinition:
    """A compiled identifier pattern.

    ``field_names`` are metadata keys whose whole string value is taken as an
    identifier of this type without running the regex.
    """

    type: str
    display_name: str
    pattern: re.Pattern[str]
    priority: int
    field_names: tuple[str, ...] = ()
    is_built_in: bool = True


class ExtractedIdentifier(NamedTuple):
    type: str
    value: str


def _builtin(type_: str, display_name: str, regex: str, priority: int, field_names: tuple[str, ...] = ()) -> PatternDefinition:
    return PatternDefinition(
        type=type_,
        display_name=display_name,
        pattern=re.compile(regex, re.IGNORECASE),
        priority=priority,
        field_names=field_names,
    )


DEFAULT_PATTERNS: tuple[PatternDefinition, ...] = (
    _builtin(
        "uuid",
        "UUID",
        r"\b([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})\b",
        100,
        ("id", "uuid", "guid"),
    ),
    _builtin(
        "request_id",
        "Request ID",
        r"""\b(?:req(?:uest)?[-_]?id|requestId)[:=\s]["']?([a-zA-Z0-9\-_]{8,64})["']?""",
        90,
        ("request_id", "requestId", "req_id", "reqId", "x-request-id"),
    ),
    _builtin("request_id", "Request ID", r"\b(req[-_][a-zA-Z0-9\-_]{6,32})\b", 89),
    _builtin(
        "session_id",
        "Session ID",
        r"""\b(?:sess(?:ion)?[-_]?id|sessionId)[:=\s]["']?([a-zA-Z0-9\-_]{16,128})["']?""",
        85,
        ("session_id", "sessionId", "sid", "session"),
    ),
    _builtin("session_id", "Session ID", r"\b(sess[-_][a-zA-Z0-9\-_]{8,64})\b", 84),
    _builtin(
        "user_id",
        "User ID",
        r"""\b(?:user[-_]?id|userId|uid)[:=\s]["']?([a-zA-Z0-9\-_]{1,64})["']?""",
        80,
        ("user_id", "userId", "uid", "user"),
    ),
    _builtin("user_id", "User ID", r"\b(user[-_][a-zA-Z0-9\-_]{1,32})\b", 79),
    _builtin(
        "transaction_id",
        "Transaction ID",
        r"""\b(?:tx(?:n)?[-_]?id|transactionId)[:=\s]["']?([a-zA-Z0-9\-_]{8,64})["']?""",
        75,
        ("transaction_id", "transactionId", "tx_id", "txId", "txn_id", "txnId"),
    ),
    _builtin("transaction_id", "Transaction ID", r"\b(txn?[-_][a-zA-Z0-9\-_]{6,32})\b", 74),
    _builtin(
        "order_id",
        "Order ID",
        r"""\b(?:order[-_]?id|orderId)[:=\s]["']?([a-zA-Z0-9\-_]{4,64})["']?""",
        70,
        ("order_id", "orderId", "order"),
    ),
    _builtin("order_id", "Order ID", r"\b(ord(?:er)?[-_][a-zA-Z0-9\-_]{4,32})\b", 69),
    _builtin(
        "correlation_id",
        "Correlation ID",
        r"""\b(?:corr(?:elation)?[-_]?id|correlationId|x-correlation-id)[:=\s]["']?([a-zA-Z0-9\-_]{8,64})["']?""",
        65,
        ("correlation_id", "correlationId", "corr_id", "x-correlation-id"),
    ),
    _builtin("correlation_id", "Correlation ID", r"\b(corr[-_][a-zA-Z0-9\-_]{6,32})\b", 64),
    _builtin(
        "trace_id",
        "Trace ID",
        r"""\b(?:trace[-_]?id|traceId)[:=\s]["']?([a-f0-9]{32})["']?""",
        60,
        ("trace_id", "traceId", "x-trace-id"),
    ),
    _builtin(
        "span_id",
        "Span ID",
        r"""\b(?:span[-_]?id|spanId)[:=\s]["']?([a-f0-9]{16})["']?""",
        55,
        ("span_id", "spanId", "x-span-id"),
    ),
)


def compile_pattern(regex: str) -> re.Pattern[str]:
    """Compile a tenant regex with the matching flags used for all patterns.

    Raises:
        InvalidPatternError: The regex does not compile.
    """
    try:
        return re.compile(regex, re.IGNORECASE)
    except re.error as e:
        raise InvalidPatternError(f"Invalid regex pattern {regex!r}: {e}") from e


def validate_pattern(regex: str) -> bool:
    try:
        compile_pattern(regex)
    except InvalidPatternError:
        return False
    return True


def test_pattern(regex: str, text: str, *, max_matches: int = MAX_TEST_MATCHES) -> list[str]:
    """Run a candidate regex over sample text and return the extracted values.

    Raises:
        InvalidPatternError: The regex does not compile.
    """
    compiled = compile_pattern(regex)
    values: list[str] = []
    for match in compiled.finditer(text):
        values.append(_match_value(match))
        if len(values) >= max_matches:
            break
    return values


def extract_with_patterns(text: str, patterns: Iterable[PatternDefinition]) -> list[ExtractedIdentifier]:
    """Scan text with each pattern in order, deduplicating on (type, lowercased value)."""
    found: list[ExtractedIdentifier] = []
    seen: set[tuple[str, str]] = set()

    for definition in patterns:
        for match in definition.pattern.finditer(text):
            value = _match_value(match)
            if not value:
                continue
            key = (definition.type, value.lower())
            if key in seen:
                continue
            seen.add(key)
            found.append(ExtractedIdentifier(definition.type, value))

    return found


def match_field_name(field_name: str, value: object, patterns: Iterable[PatternDefinition]) -> ExtractedIdentifier | None:
    """Take a non-empty string value as an identifier when its key is a known field name."""
    if not isinstance(value, str) or not value:
        return None

    lowered = field_name.lower()
    for definition in patterns:
        if any(name.lower() == lowered for name in definition.field_names):
            return ExtractedIdentifier(definition.type, value)

    return None


def _match_value(match: re.Match[str]) -> str:
    if match.re.groups:
        group = match.group(1)
        if group:
            return group
    return match.group(0)
