"""String enums shared by the document pipeline and the API."""

from enum import StrEnum


class ColumnType(StrEnum):
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"
    BOOLEAN = "BOOLEAN"


class GenerationMode(StrEnum):
    CREATE = "create"
    FULL_EDIT = "full_edit"
    FAST_EDIT = "fast_edit"


class EditState(StrEnum):
    ANALYZING = "analyzing"
    FAST_ATTEMPT = "fast_attempt"
    FALLBACK = "fallback"
    COMPLETE = "complete"
    ERROR = "error"


class EditPhase(StrEnum):
    FAST = "fast"
    FALLBACK = "fallback"


class ProgressStep(StrEnum):
    ANALYZING = "analyzing"
    FAST_ATTEMPT = "fast_attempt"
    FALLBACK = "fallback"
    GENERATING = "generating"
    STREAMING = "streaming"
    PARSING = "parsing"
    APPLYING = "applying"
    CREATING_TABLES = "creating_tables"
    SEEDING = "seeding"
    COMPLETE = "complete"
    ERROR = "error"
