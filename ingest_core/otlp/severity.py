"""Map OpenTelemetry SeverityNumber / SeverityText to platform log levels.

OpenTelemetry severity ranges:
    0: UNSPECIFIED, 1-4: TRACE, 5-8: DEBUG, 9-12: INFO,
    13-16: WARN, 17-20: ERROR, 21-24: FATAL
"""

from ingest_core.records import LogLevel

# Checked in order; the first keyword contained in the text wins.
_TEXT_LEVELS: tuple[tuple[tuple[str, ...], LogLevel], ...] = (
    (("trace", "debug"), LogLevel.DEBUG),
    (("info",), LogLevel.INFO),
    (("warn",), LogLevel.WARN),
    (("error",), LogLevel.ERROR),
    (("fatal", "critical"), LogLevel.CRITICAL),
)

_LEVEL_TO_SEVERITY = {
    LogLevel.DEBUG: 5,
    LogLevel.INFO: 9,
    LogLevel.WARN: 13,
    LogLevel.ERROR: 17,
    LogLevel.CRITICAL: 21,
}


def map_severity_to_level(severity_number: int | None = None, severity_text: str | None = None) -> LogLevel:
    """Pick a log level, preferring SeverityText so custom SDK names are honored."""
    if severity_text:
        normalized = severity_text.lower()
        for keywords, level in _TEXT_LEVELS:
            if any(keyword in normalized for keyword in keywords):
                return level

    number = severity_number or 0
    if number >= 21:
        return LogLevel.CRITICAL
    if number >= 17:
        return LogLevel.ERROR
    if number >= 13:
        return LogLevel.WARN
    if number >= 9:
        return LogLevel.INFO
    if number >= 1:
        return LogLevel.DEBUG
    return LogLevel.INFO


def level_to_severity_number(level: LogLevel) -> int:
    """Lowest SeverityNumber of the band a level maps back to."""
    return _LEVEL_TO_SEVERITY.get(level, 9)
