"""Exception fingerprinting and error grouping."""

from ._types import ErrorGroup, ErrorGroupStatus, ExceptionLanguage, ParsedException, StackFrame
from .fingerprint import generate_fingerprint, generate_fingerprint_from_frames, normalize_message
from .store import ErrorGroupStore, MemoryErrorGroupStore, group_exception

__all__ = [
    "ErrorGroup",
    "ErrorGroupStatus",
    "ErrorGroupStore",
    "ExceptionLanguage",
    "MemoryErrorGroupStore",
    "ParsedException",
    "StackFrame",
    "generate_fingerprint",
    "generate_fingerprint_from_frames",
    "group_exception",
    "normalize_message",
]
