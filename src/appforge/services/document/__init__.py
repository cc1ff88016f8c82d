from appforge.services.document.extractor import extract_payload, strip_code_fences
from appforge.services.document.parser import load_payload, parse_document, parse_patch_document
from appforge.services.document.repairer import repair_truncated_json
from appforge.services.document.validator import validate_document, validate_patch_document

__all__ = [
    "extract_payload",
    "load_payload",
    "parse_document",
    "parse_patch_document",
    "repair_truncated_json",
    "strip_code_fences",
    "validate_document",
    "validate_patch_document",
]
