import re
from datetime import datetime

import pytest

from farmdoc.core.errors import MissingMarkerError
from farmdoc.processing.lines import cell_text, is_blank_row, normalize_lines, row_text
from farmdoc.processing.sections import (
    MAIN_SECTION,
    apply_start_anchor,
    apply_stop_pattern,
    find_markers,
    split_sections,
)


def test_normalize_lines_collapses_whitespace_and_drops_empty() -> None:
    text = "  first\t line \r\n\n\xa0\nsecond   line\rthird"
    assert normalize_lines(text) == ["first line", "second line", "third"]


def test_normalize_lines_empty_input() -> None:
    assert normalize_lines("") == []
    assert normalize_lines(None) == []
    assert normalize_lines(" \n \n") == []


def test_row_text_and_blank_rows() -> None:
    assert cell_text(datetime(2025, 10, 1, 6, 5)) == "2025-10-01 06:05:00"
    assert row_text(["1 ATASKAITA", None, " "]) == "1 ATASKAITA"
    assert is_blank_row([None, "", "  "])
    assert is_blank_row([])
    assert not is_blank_row([None, 0])


def test_find_markers_is_case_insensitive_substring() -> None:
    rows = [["Farm"], [None, "1 ataskaita:"], ["2 ATASKAITA"]]
    assert find_markers(rows, ["1 ATASKAITA", "2 ATASKAITA", "3 ATASKAITA"]) == {
        "1 ATASKAITA": 1,
        "2 ATASKAITA": 2,
        "3 ATASKAITA": None,
    }


def test_split_sections_bounds_and_blank_edges() -> None:
    rows = [
        ["preamble"],
        ["1 REPORT"],
        [None],
        ["a", 1],
        ["b", 2],
        [None, None],
        ["2 REPORT"],
        ["c", 3],
        [],
    ]
    first, second = split_sections(rows, ["1 REPORT", "2 REPORT"], names=["one", "two"])
    assert first.name == "one"
    assert first.rows == [["a", 1], ["b", 2]]
    assert first.marker_index == 1
    assert first.start == 3
    assert second.name == "two"
    assert second.rows == [["c", 3]]


def test_split_sections_uses_next_marker_position_not_list_order() -> None:
    rows = [["2 REPORT"], ["x"], ["1 REPORT"], ["y"]]
    first, second = split_sections(rows, ["1 REPORT", "2 REPORT"])
    assert first.rows == [["y"]]
    assert second.rows == [["x"]]


def test_split_sections_without_markers_is_one_section() -> None:
    (only,) = split_sections(["", "a", "b", ""], [])
    assert only.name == MAIN_SECTION
    assert only.rows == ["a", "b"]


def test_missing_marker_reports_found_and_missing() -> None:
    with pytest.raises(MissingMarkerError) as exc:
        split_sections([["1 REPORT"], ["x"]], ["1 REPORT", "2 REPORT"])
    err = exc.value
    assert err.missing == ["2 REPORT"]
    assert err.found == {"1 REPORT": 0, "2 REPORT": None}
    assert err.to_dict()["error"] == "missing_marker"


def test_start_anchor_drops_preamble() -> None:
    lines = ["Report", "Date 2025-10-01", "Eil. Nr. Species", "1 row"]
    body, at = apply_start_anchor(lines, re.compile(r"Eil\.\s*Nr\."))
    assert body == ["Eil. Nr. Species", "1 row"]
    assert at == 2
    assert apply_start_anchor(lines, re.compile("absent")) == (lines, None)


def test_stop_pattern_cuts_trailing_lines() -> None:
    lines = ["item 1", "item 2", "Iš viso: 10,00", "footer"]
    body, at = apply_stop_pattern(lines, re.compile("iš viso", re.IGNORECASE))
    assert body == ["item 1", "item 2"]
    assert at == 2
