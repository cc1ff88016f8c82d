"""Heuristic repair of JSON cut off by an output-length limit.

The repair is purely structural: it cuts the text back to the end of the last
completely closed object or array, drops a dangling comma, and appends the
closers for whatever is still open. String literals are never closed: text
that stops inside a string is unrepairable, as is text with nothing complete
before the cut.
"""

import json
import logging
from typing import NamedTuple

from appforge.errors.exceptions import RepairFailure

logger = logging.getLogger(__name__)

_CLOSER_FOR = {"{": "}", "[": "]"}


class StructureScan(NamedTuple):
    open_closers: list[str]
    last_boundary: int
    in_string: bool


def scan_structure(text: str) -> StructureScan:
    """Scan ``text`` outside string literals.

    ``open_closers`` holds the closers still expected, innermost last;
    ``last_boundary`` is the index just past the last closer that matched
    (0 if none did); ``in_string`` is true when the text ends inside a string.
    """
    stack: list[str] = []
    last_boundary = 0
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSER_FOR:
            stack.append(_CLOSER_FOR[ch])
        elif ch in ("}", "]"):
            if stack and stack[-1] == ch:
                stack.pop()
                last_boundary = i + 1

    return StructureScan(stack, last_boundary, in_string)


def repair_truncated_json(payload: str) -> str:
    """Return the longest parseable prefix of ``payload`` with its structures closed.

    Raises:
        RepairFailure: the payload stops inside a string literal, or the
            repaired text still does not parse.
    """
    try:
        json.loads(payload)
        return payload
    except json.JSONDecodeError:
        pass

    logger.warning("Attempting to repair truncated document (%d chars)", len(payload))

    scan = scan_structure(payload)
    if scan.in_string:
        logger.error("Document was cut off inside a string literal, not repairable")
        raise RepairFailure(
            "Response was truncated inside a string value and could not be repaired",
            details={"original_length": len(payload)},
        )

    repaired = payload[: scan.last_boundary].rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1]
    logger.info(
        "Truncated to last complete value at pos %d (removed %d trailing chars)",
        scan.last_boundary,
        len(payload) - scan.last_boundary,
    )

    closing = "".join(reversed(scan_structure(repaired).open_closers))
    repaired += closing

    try:
        json.loads(repaired)
    except json.JSONDecodeError as exc:
        logger.error("Repaired document is still invalid: %s", exc)
        raise RepairFailure(
            details={"original_length": len(payload), "cut_at": scan.last_boundary, "error": exc.msg}
        ) from exc

    logger.info("Repair added %d closer(s) %r; %d chars recovered", len(closing), closing, len(repaired))
    return repaired
