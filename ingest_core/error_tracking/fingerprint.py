"""Structural fingerprints for exception grouping.

A fingerprint is the SHA-256 hex digest of the exception type, the language
and the ordered app-code frames (file path, function name, line number). The
message and library frames never contribute, so exceptions raised from the same
application call site group together however the message varies.
"""

import hashlib
import re
from collections.abc import Iterable
from typing import Any

from ._types import ExceptionLanguage, ParsedException, StackFrame

# Applied in sequence. Digits run first, so "0xabc" becomes "Nxabc" and the hex
# rule only sees literals that survived it.
_MESSAGE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\d+", re.ASCII), "N"),
    (re.compile(r"0x[0-9a-f]+", re.IGNORECASE), "0xHEX"),
    (re.compile(r"'[^']*'"), "'STRING'"),
    (re.compile(r'"[^"]*"'), '"STRING"'),
    (re.compile(r"\[[^\]]*\]"), "[ARRAY]"),
    (re.compile(r"\{[^}]*\}"), "{OBJECT}"),
)


def generate_fingerprint(parsed: ParsedException) -> str:
    """Fingerprint a parsed exception. Same input, same 64-character hex digest."""
    return generate_fingerprint_from_frames(parsed.exception_type, parsed.frames, parsed.language)


def generate_fingerprint_from_frames(
    exception_type: str,
    frames: Iterable[StackFrame],
    language: ExceptionLanguage | str,
) -> str:
    """Fingerprint an exception type plus its frames.

    Only frames with ``is_app_code`` set are hashed, in their original order.
    Each value is written as a length-prefixed, null-separated field so that
    adjacent values cannot run into each other. A missing function name or line
    number hashes as an empty field.
    """
    h = hashlib.sha256()

    _hash_field(h, exception_type.encode("utf-8"))
    _hash_field(h, str(language).encode("utf-8"))

    for frame in frames:
        if not frame.is_app_code:
            continue
        _hash_field(h, frame.file_path.encode("utf-8"))
        _hash_field(h, (frame.function_name or "").encode("utf-8"))
        _hash_field(h, (str(frame.line_number) if frame.line_number is not None else "").encode("ascii"))

    return h.hexdigest()


def normalize_message(message: str) -> str:
    """Replace the volatile parts of an exception message with placeholders.

    >>> normalize_message("Error 42: Invalid user 'john' at index [0]")
    "Error N: Invalid user 'STRING' at index [ARRAY]"
    """
    for pattern, replacement in _MESSAGE_RULES:
        message = pattern.sub(replacement, message)
    return message.strip()


def _hash_field(h: Any, data: bytes) -> None:
    """Append a length-prefixed, null-separated field to the hash."""
    h.update(str(len(data)).encode("ascii"))
    h.update(b"\x00")
    h.update(data)
