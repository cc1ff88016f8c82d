"""Tests for the search/replace patch applier."""

import pytest

from appforge.errors.exceptions import PatchNotApplicable
from appforge.models.document import PatchOperation
from appforge.services.patching import apply_patches

MARKUP = "<html><h1>Old</h1><p>Body</p><footer>v1</footer></html>"


def _patches(*pairs):
    return [PatchOperation(search=s, replace=r) for s, r in pairs]


def test_single_patch():
    result = apply_patches(MARKUP, _patches(("<h1>Old</h1>", "<h1>New</h1>")))
    assert result == "<html><h1>New</h1><p>Body</p><footer>v1</footer></html>"


def test_patches_apply_in_order_to_running_text():
    result = apply_patches(
        MARKUP,
        _patches(("<h1>Old</h1>", "<h1>Mid</h1>"), ("<h1>Mid</h1>", "<h1>Final</h1>")),
    )
    assert "<h1>Final</h1>" in result
    assert "Mid" not in result


def test_empty_replace_deletes():
    assert apply_patches(MARKUP, _patches(("<p>Body</p>", ""))) == "<html><h1>Old</h1><footer>v1</footer></html>"


def test_first_match_only():
    assert apply_patches("a-a-a", _patches(("a", "b"))) == "b-a-a"


def test_no_patches_is_identity():
    assert apply_patches(MARKUP, []) == MARKUP


def test_missing_search_aborts_whole_list():
    markup = MARKUP
    with pytest.raises(PatchNotApplicable) as exc_info:
        apply_patches(markup, _patches(("<h1>Old</h1>", "<h1>New</h1>"), ("<nav>", "<nav class='x'>")))
    assert exc_info.value.index == 1
    assert exc_info.value.search == "<nav>"
    assert markup == MARKUP


def test_search_consumed_by_earlier_patch_is_not_applicable():
    with pytest.raises(PatchNotApplicable) as exc_info:
        apply_patches(MARKUP, _patches(("<footer>v1</footer>", ""), ("v1", "v2")))
    assert exc_info.value.index == 1


def test_search_is_case_and_whitespace_exact():
    with pytest.raises(PatchNotApplicable):
        apply_patches(MARKUP, _patches(("<H1>Old</H1>", "x")))
    with pytest.raises(PatchNotApplicable):
        apply_patches(MARKUP, _patches(("<h1> Old</h1>", "x")))
