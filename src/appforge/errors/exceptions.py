"""Custom exception classes for AppForge."""

from typing import Any


class AppForgeError(Exception):
    """Base exception for AppForge."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class BadRequestError(AppForgeError):
    """Malformed client request."""

    def __init__(self, message: str, details=None):
        super().__init__("BAD_REQUEST", message, details, status_code=400)


class NotFoundError(AppForgeError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class GenerationServiceError(AppForgeError):
    """The generative-text provider failed to produce a response."""

    def __init__(self, message: str, details=None):
        super().__init__("GENERATION_FAILED", message, details, status_code=502)


class StorageError(AppForgeError):
    """A persistence call failed."""

    def __init__(self, message: str, details=None):
        super().__init__("STORAGE_ERROR", message, details, status_code=500)


# --- Document pipeline ---


class DocumentError(AppForgeError):
    """Base for failures turning generated text into a validated document."""

    def __init__(self, code: str, message: str, details=None):
        super().__init__(code, message, details, status_code=502)


class ExtractionError(DocumentError):
    """No document boundary could be located in the raw response."""

    def __init__(self, message: str, details=None):
        super().__init__("EXTRACTION_ERROR", message, details)


class UnterminatedPayloadError(ExtractionError):
    """An opening brace was found but no closing brace.

    Expected for truncated output: ``payload`` holds the text from the first
    opening brace onwards so the caller can hand it to the repairer.
    """

    def __init__(self, payload: str):
        super().__init__("No closing brace found in response; the document may be truncated")
        self.payload = payload


class ParseError(DocumentError):
    """Boundaries were found but the payload is not well-formed JSON."""

    def __init__(self, message: str, details=None):
        super().__init__("PARSE_ERROR", message, details)


class RepairFailure(DocumentError):
    """Truncation repair was attempted and the result is still unparseable."""

    def __init__(self, message: str = "Response was truncated and could not be repaired", details=None):
        super().__init__("REPAIR_FAILED", message, details)


class ValidationError(DocumentError):
    """The parsed document is missing required fields or has malformed ones."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details)


class PatchNotApplicable(AppForgeError):
    """A patch search string does not occur in the current markup.

    Only ever raised inside the fast edit phase, where it triggers fallback.
    """

    def __init__(self, index: int, search: str):
        preview = search if len(search) <= 80 else search[:77] + "..."
        super().__init__(
            "PATCH_NOT_APPLICABLE",
            f"Patch {index} search text not found in markup: {preview!r}",
            details={"index": index},
            status_code=409,
        )
        self.index = index
        self.search = search


class PartialSeedFailure(AppForgeError):
    """A single seed row could not be inserted. Collected, never raised."""

    def __init__(self, table_name: str, row: Any, cause: Exception | str):
        super().__init__(
            "SEED_ROW_FAILED",
            f"Failed to insert seed row into '{table_name}': {cause}",
            details={"table": table_name},
            status_code=500,
        )
        self.table_name = table_name
        self.row = row
        self.cause = cause
