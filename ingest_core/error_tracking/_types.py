"""Exception tracking types: parsed exceptions, stack frames and error groups."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExceptionLanguage(StrEnum):
    """Runtime that produced a stack trace."""

    NODEJS = "nodejs"
    PYTHON = "python"
    JAVA = "java"
    GO = "go"
    PHP = "php"
    UNKNOWN = "unknown"


class ErrorGroupStatus(StrEnum):
    """Triage state of an error group."""

    OPEN = "open"
    RESOLVED = "resolved"
    IGNORED = "ignored"


class StackFrame(BaseModel):
    """One frame of a parsed stack trace.

    ``is_app_code`` is False for library and vendor frames; those never take
    part in fingerprinting.
    """

    model_config = ConfigDict(frozen=True)

    frame_index: int
    file_path: str
    function_name: str | None = None
    line_number: int | None = None
    column_number: int | None = None
    is_app_code: bool
    metadata: dict[str, Any] | None = None


class ParsedException(BaseModel):
    """Exception extracted from a log by an upstream parser."""

    model_config = ConfigDict(frozen=True)

    exception_type: str
    exception_message: str = ""
    language: ExceptionLanguage = ExceptionLanguage.UNKNOWN
    raw_stack_trace: str = ""
    frames: tuple[StackFrame, ...] = ()


class ErrorGroup(BaseModel):
    """Occurrences of structurally identical exceptions, keyed by fingerprint."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    project_id: str | None = None
    fingerprint: str
    exception_type: str
    exception_message: str | None = None
    language: ExceptionLanguage
    occurrence_count: int = Field(default=1, ge=1)
    first_seen: datetime
    last_seen: datetime
    status: ErrorGroupStatus = ErrorGroupStatus.OPEN
    sample_log_id: str | None = None
