import pytest

from farmdoc.processing.header import dedupe_headers, detect_header, detect_header_line, looks_like_tag


@pytest.mark.parametrize("tag", ["LT000012345678", "DE0987654321", "lt123", "AB123456", " LT1 "])
def test_tag_shaped_first_cell_is_never_a_header(tag: str) -> None:
    assert looks_like_tag(tag)
    assert not detect_header([tag, "Name", "Sex", "Breed"])
    assert not detect_header([tag])


def test_mostly_strings_is_a_header() -> None:
    assert detect_header(["Karves nr", "Kaklo nr", "Statusas", None, ""])
    assert detect_header(["Name", "Qty", 1, 2])  # exactly half


def test_mostly_numbers_is_data() -> None:
    assert not detect_header([1001, 5501, "Veršinga", 3])
    assert not detect_header(["1001", "15", "12", "x"])
    assert not detect_header([])
    assert not detect_header([None, " "])


def test_header_line_rejects_lines_a_row_pattern_accepts() -> None:
    line = "Eil. Nr. Rūšis Ženklo Nr. Vardas"
    assert detect_header_line(line, lambda _: False)
    assert not detect_header_line(line, lambda _: True)
    assert not detect_header_line("", lambda _: False)


def test_header_line_rejects_truncated_data_rows() -> None:
    assert not detect_header_line("2 Galvijai LT000012345679 Margė", lambda _: False)
    assert not detect_header_line("Galvijai LT000012345679 Margė Karvė", lambda _: False)


def test_dedupe_headers_suffixes_repeats() -> None:
    names = ["data", "laikas", "data", "laikas", "data", None, " "]
    assert dedupe_headers(names) == ["data", "laikas", "data_2", "laikas_2", "data_3", "Col_6", "Col_7"]


def test_dedupe_headers_skips_taken_suffixes() -> None:
    assert dedupe_headers(["a", "a_2", "a", "a"]) == ["a", "a_2", "a_3", "a_4"]


@pytest.mark.parametrize(
    "names",
    [
        ["x", "x", "x"],
        ["a", "a_2", "a", "", ""],
        ["Col_2", None, "Col_2"],
        ["k", "k_3", "k", "k", "k"],
    ],
)
def test_dedupe_headers_output_is_unique_and_same_length(names: list) -> None:
    out = dedupe_headers(names)
    assert len(out) == len(names)
    assert len(set(out)) == len(out)
