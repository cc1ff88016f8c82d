"""Minimal shape checks on parsed documents."""

import json
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from appforge.errors.exceptions import ValidationError
from appforge.models.document import GeneratedDocument, PatchDocument

logger = logging.getLogger(__name__)

_OPTIONAL_FIELDS = ("seedData", "newTables", "newColumns")


def _preview(value: Any, limit: int = 200) -> str:
    try:
        text = json.dumps(value)
    except (TypeError, ValueError):
        text = repr(value)
    return text[:limit]


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _pydantic_details(exc: PydanticValidationError) -> list[dict]:
    return [
        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


def _drop_absent_optionals(data: dict) -> dict:
    cleaned = dict(data)
    for key in _OPTIONAL_FIELDS:
        if key in cleaned and cleaned[key] is None:
            del cleaned[key]
    seed = cleaned.get("seedData")
    if seed is not None and not isinstance(seed, dict):
        logger.warning("Ignoring seedData of type %s", type(seed).__name__)
        del cleaned["seedData"]
    return cleaned


def _check_columns(table_name: str, columns: list) -> None:
    for index, col in enumerate(columns):
        if not isinstance(col, dict) or not _is_name(col.get("name")):
            raise ValidationError(
                f"Invalid column definition at index {index} of table '{table_name}': {_preview(col)}"
            )


def validate_document(data: Any) -> GeneratedDocument:
    """Check the required shape and build a GeneratedDocument.

    Requires a ``tables`` list whose entries each have a non-empty ``name`` and
    a ``columns`` list, and an ``html`` string. Markup content is not inspected.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Document must be a JSON object, got {type(data).__name__}")

    tables = data.get("tables")
    if not isinstance(tables, list):
        raise ValidationError("Invalid response structure: missing or invalid 'tables' array")

    if not isinstance(data.get("html"), str):
        raise ValidationError("Invalid response structure: missing or invalid 'html' string")

    for index, table in enumerate(tables):
        if not isinstance(table, dict) or not _is_name(table.get("name")) or not isinstance(table.get("columns"), list):
            raise ValidationError(f"Invalid table definition at index {index}: {_preview(table)}")
        _check_columns(table["name"], table["columns"])

    try:
        return GeneratedDocument.model_validate(_drop_absent_optionals(data))
    except PydanticValidationError as exc:
        details = _pydantic_details(exc)
        raise ValidationError(
            f"Invalid document field '{details[0]['loc']}': {details[0]['msg']}",
            details=details,
        ) from exc


def validate_patch_document(data: Any) -> PatchDocument:
    """Check a fast-diff response: a ``patches`` list of search/replace pairs."""
    if not isinstance(data, dict):
        raise ValidationError(f"Document must be a JSON object, got {type(data).__name__}")

    patches = data.get("patches")
    if not isinstance(patches, list):
        raise ValidationError("Invalid response structure: missing or invalid 'patches' array")

    for index, patch in enumerate(patches):
        if not isinstance(patch, dict) or not isinstance(patch.get("search"), str) or not patch["search"]:
            raise ValidationError(f"Invalid patch at index {index}: {_preview(patch)}")
        if not isinstance(patch.get("replace", ""), str):
            raise ValidationError(f"Invalid patch at index {index}: 'replace' must be a string")

    try:
        return PatchDocument.model_validate(_drop_absent_optionals(data))
    except PydanticValidationError as exc:
        details = _pydantic_details(exc)
        raise ValidationError(
            f"Invalid patch document field '{details[0]['loc']}': {details[0]['msg']}",
            details=details,
        ) from exc
