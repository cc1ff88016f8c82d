"""Isolate the JSON document inside raw generative output."""

import logging
import re

from appforge.errors.exceptions import ExtractionError, UnterminatedPayloadError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a leading and a trailing fenced-code marker, if present."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1), count=1)


def extract_payload(raw: str, keep_tail: bool = False) -> str:
    """Return the substring of ``raw`` most likely to be the document.

    Preamble before the first ``{`` is discarded. Trailing text after the
    last ``}`` is discarded too, unless ``keep_tail`` is set: a truncated
    response has no trailing prose, only an unfinished document.

    Raises:
        ExtractionError: no opening brace at all.
        UnterminatedPayloadError: an opening brace but no closing one. The
            text from the first brace on is attached for repair.
    """
    cleaned = strip_code_fences(raw.strip())

    first_brace = cleaned.find("{")
    if first_brace == -1:
        raise ExtractionError("No JSON object found in response")

    if first_brace > 0:
        logger.info("Stripping %d chars of preamble before document", first_brace)
        cleaned = cleaned[first_brace:]

    last_brace = cleaned.rfind("}")
    if last_brace == -1:
        raise UnterminatedPayloadError(cleaned)

    suffix = cleaned[last_brace + 1:]
    if suffix.strip() and not keep_tail:
        logger.info("Stripping %d chars of trailing text after document", len(suffix))
        cleaned = cleaned[: last_brace + 1]

    return cleaned
