"""Tests for isolating the JSON document in raw generative output."""

import pytest

from appforge.errors.exceptions import ExtractionError, UnterminatedPayloadError
from appforge.services.document import extract_payload, strip_code_fences


def test_strip_json_code_fence():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_bare_code_fence():
    assert strip_code_fences('```\n{"a": 1}\n```  ') == '{"a": 1}'


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_extract_plain_document():
    assert extract_payload('{"tables": [], "html": ""}') == '{"tables": [], "html": ""}'


def test_extract_strips_preamble_and_trailing_prose():
    raw = 'Here is your app:\n{"tables": [], "html": "<p>x</p>"}\nLet me know if you need changes.'
    assert extract_payload(raw) == '{"tables": [], "html": "<p>x</p>"}'


def test_extract_strips_fence_and_prose():
    raw = 'Sure!\n```json\n{"tables": []}\n```'
    assert extract_payload(raw) == '{"tables": []}'


def test_extract_keeps_tail_when_asked():
    raw = '{"seedData": {"t": [{"a": 1}, {"a": "unfinish'
    assert extract_payload(raw, keep_tail=True) == raw
    assert extract_payload(raw) == '{"seedData": {"t": [{"a": 1}'


def test_extract_no_brace_raises():
    with pytest.raises(ExtractionError) as exc_info:
        extract_payload("I could not generate that app, sorry.")
    assert exc_info.value.code == "EXTRACTION_ERROR"
    assert not isinstance(exc_info.value, UnterminatedPayloadError)


def test_extract_unterminated_carries_payload():
    with pytest.raises(UnterminatedPayloadError) as exc_info:
        extract_payload('Okay: {"tables": [')
    assert exc_info.value.payload == '{"tables": ['
    assert isinstance(exc_info.value, ExtractionError)
