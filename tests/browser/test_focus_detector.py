"""Tests for snapshot parsing and focus heuristics."""

import pytest

from browserviz.browser.focus_detector import (
    calculate_optimal_zoom_region,
    parse_snapshot,
    suggest_focus_element,
)
from browserviz.browser.models import BoundingBox, RefElement


SNAPSHOT = """\
- document
  - heading "Shopping list" [ref=e1]
  - textbox "New item" [ref=e2]
  - button "Add" [ref=e3]
  - link "Help" [ref=e4]
  - listitem [ref=e5]
"""


def test_parse_snapshot_extracts_refs_in_order():
    elements = parse_snapshot(SNAPSHOT)
    assert [e.ref for e in elements] == ["@e1", "@e2", "@e3", "@e4", "@e5"]


def test_parse_snapshot_reads_role_and_name():
    elements = parse_snapshot(SNAPSHOT)
    assert elements[2] == RefElement(ref="@e3", role="button", name="Add")


def test_parse_snapshot_unknown_role_when_no_name():
    elements = parse_snapshot(SNAPSHOT)
    assert elements[4].role == "unknown"
    assert elements[4].name is None


def test_parse_snapshot_ignores_lines_without_refs():
    assert parse_snapshot("- document\n- heading \"Title\"") == []


def test_parse_snapshot_empty():
    assert parse_snapshot("") == []


def test_parse_snapshot_empty_name():
    elements = parse_snapshot('- button "" [ref=e9]')
    assert elements == [RefElement(ref="@e9", role="button", name="")]


def test_suggest_none_for_empty_snapshot():
    assert suggest_focus_element("", "click @e1") is None


def test_suggest_first_without_last_action():
    assert suggest_focus_element(SNAPSHOT).ref == "@e1"
    assert suggest_focus_element(SNAPSHOT, "").ref == "@e1"


def test_suggest_ref_named_in_last_action():
    assert suggest_focus_element(SNAPSHOT, "click @e4").ref == "@e4"


def test_suggest_missing_ref_falls_back_to_first():
    assert suggest_focus_element(SNAPSHOT, "click @e99").ref == "@e1"


def test_suggest_priority_role_without_ref():
    """Without a ref, buttons win over textboxes and links."""
    assert suggest_focus_element(SNAPSHOT, "typed something").ref == "@e3"


def test_suggest_priority_order():
    snapshot = '- link "Docs" [ref=e1]\n- textbox "Search" [ref=e2]'
    assert suggest_focus_element(snapshot, "scrolled").ref == "@e2"


def test_suggest_first_when_no_priority_role():
    snapshot = '- heading "A" [ref=e1]\n- img "Logo" [ref=e2]'
    assert suggest_focus_element(snapshot, "scrolled").ref == "@e1"


@pytest.mark.parametrize(
    "box,expected",
    [
        (BoundingBox(500, 300, 50, 20), BoundingBox(400, 200, 250, 220)),
        (BoundingBox(10, 10, 20, 20), BoundingBox(0, 0, 220, 220)),
    ],
)
def test_calculate_optimal_zoom_region(box, expected):
    assert calculate_optimal_zoom_region(box, 1280, 720) == expected


def test_zoom_region_grows_to_minimum_size():
    region = calculate_optimal_zoom_region(BoundingBox(500, 300, 0, 0), 1280, 720, context_padding=10)
    assert region == BoundingBox(490, 290, 200, 200)


def test_zoom_region_inside_image():
    region = calculate_optimal_zoom_region({"x": 1250, "y": 700, "width": 30, "height": 20}, 1280, 720)
    assert region.x >= 0 and region.y >= 0
    assert region.right <= 1280
    assert region.bottom <= 720
