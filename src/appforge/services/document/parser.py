"""Turn raw generative output into a validated document.

raw text -> extract_payload -> json -> (repair_truncated_json if the
response was cut off) -> validate_document.
"""

import json
import logging
from typing import Any

from appforge.errors.exceptions import ParseError, UnterminatedPayloadError
from appforge.models.document import GeneratedDocument, PatchDocument
from appforge.services.document.extractor import extract_payload
from appforge.services.document.repairer import repair_truncated_json
from appforge.services.document.validator import validate_document, validate_patch_document

logger = logging.getLogger(__name__)

_CONTEXT_CHARS = 100
_HEAD_TAIL_CHARS = 500


def _log_parse_error(payload: str, exc: json.JSONDecodeError, label: str) -> None:
    logger.error("%s: JSON decode failed: %s", label, exc)
    start = max(0, exc.pos - _CONTEXT_CHARS)
    logger.error("%s: context around pos %d: %s", label, exc.pos, payload[start: exc.pos + _CONTEXT_CHARS])
    logger.error("%s: first %d chars: %s", label, _HEAD_TAIL_CHARS, payload[:_HEAD_TAIL_CHARS])
    logger.error("%s: last %d chars: %s", label, _HEAD_TAIL_CHARS, payload[-_HEAD_TAIL_CHARS:])


def load_payload(raw: str, truncated: bool, label: str = "document") -> Any:
    """Extract and decode the JSON payload, repairing it only if ``truncated``.

    Raises:
        ExtractionError: no document boundary (or no closing brace and the
            response was not truncated).
        ParseError: payload is malformed and the response was not truncated.
        RepairFailure: the response was truncated and could not be repaired.
    """
    logger.info("%s: raw response %d chars (truncated=%s)", label, len(raw), truncated)

    try:
        payload = extract_payload(raw, keep_tail=truncated)
    except UnterminatedPayloadError as exc:
        if not truncated:
            raise
        logger.warning("%s: no closing brace in truncated response, repairing", label)
        return json.loads(repair_truncated_json(exc.payload))

    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        if not truncated:
            _log_parse_error(payload, exc, label)
            raise ParseError(
                f"Failed to parse response as JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
                details={"position": exc.pos},
            ) from exc
        logger.warning("%s: decode failed on truncated response, repairing", label)
        return json.loads(repair_truncated_json(payload))


def parse_document(raw: str, truncated: bool = False, label: str = "document") -> GeneratedDocument:
    """Run the full extract / repair / validate pipeline for a complete document."""
    document = validate_document(load_payload(raw, truncated, label))
    logger.info(
        "%s: %d table(s), markup %d chars, seed data for %d table(s)",
        label,
        len(document.tables),
        len(document.markup),
        len(document.seed_data),
    )
    return document


def parse_patch_document(raw: str, label: str = "fast_edit") -> PatchDocument:
    """Parse a fast-diff response. Truncated responses are never repaired here."""
    document = validate_patch_document(load_payload(raw, truncated=False, label=label))
    logger.info("%s: %d patch(es)", label, len(document.patches))
    return document
