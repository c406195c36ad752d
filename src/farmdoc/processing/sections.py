"""Partition a line/row stream into per-table sections.

Markers are matched case-insensitively against the whole row content joined
with spaces. Each section spans from the row after its marker up to the next
marker that follows it, or the end of input.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from farmdoc.core.errors import MissingMarkerError
from farmdoc.processing.lines import is_blank_row, row_text

MAIN_SECTION = "main"


@dataclass
class Section:
    name: str
    rows: list[Any]
    start: int  # index of the first row in the source stream
    marker_index: Optional[int] = None


def _as_text(row: Any) -> str:
    if isinstance(row, str):
        return row
    return row_text(row)


def _is_blank(row: Any) -> bool:
    if isinstance(row, str):
        return not row.strip()
    return is_blank_row(row)


def find_markers(rows: Sequence[Any], markers: Sequence[str]) -> dict[str, Optional[int]]:
    found: dict[str, Optional[int]] = {m: None for m in markers}
    lowered = {m: m.lower() for m in markers}
    for idx, row in enumerate(rows):
        if all(v is not None for v in found.values()):
            break
        text = _as_text(row).lower()
        if not text:
            continue
        for marker, needle in lowered.items():
            if found[marker] is None and needle in text:
                found[marker] = idx
    return found


def trim_blank_edges(rows: Sequence[Any]) -> tuple[list[Any], int]:
    """Trim leading/trailing blank rows; returns (rows, leading_trimmed)."""
    start = 0
    end = len(rows) - 1
    while start <= end and _is_blank(rows[start]):
        start += 1
    while end >= start and _is_blank(rows[end]):
        end -= 1
    return list(rows[start:end + 1]), start


def drop_blank_rows(rows: Sequence[Any]) -> tuple[list[Any], int]:
    kept = [r for r in rows if not _is_blank(r)]
    return kept, len(rows) - len(kept)


def split_sections(
    rows: Sequence[Any],
    markers: Sequence[str],
    names: Optional[Sequence[str]] = None,
) -> list[Section]:
    """Split rows on markers, trimming blank edges of each section.

    Raises MissingMarkerError when any marker is absent. With no markers the
    whole input becomes one section.
    """
    if not markers:
        body, lead = trim_blank_edges(rows)
        return [Section(name=MAIN_SECTION, rows=body, start=lead)]

    found = find_markers(rows, markers)
    missing = [m for m, idx in found.items() if idx is None]
    if missing:
        raise MissingMarkerError(found, missing)

    section_names = list(names) if names else list(markers)
    located = {m: idx for m, idx in found.items() if idx is not None}
    positions = sorted(located.values())
    sections: list[Section] = []
    for name, marker in zip(section_names, markers):
        begin = located[marker]
        end = next((p for p in positions if p > begin), len(rows))
        body, lead = trim_blank_edges(rows[begin + 1:end])
        sections.append(Section(name=name, rows=body, start=begin + 1 + lead, marker_index=begin))
    return sections


def apply_start_anchor(lines: Sequence[str], anchor: Optional[re.Pattern[str]]) -> tuple[list[str], Optional[int]]:
    """Drop preamble lines before the first anchor match; keep all when absent."""
    if anchor is None:
        return list(lines), None
    for idx, line in enumerate(lines):
        if anchor.search(line):
            return list(lines[idx:]), idx
    return list(lines), None


def apply_stop_pattern(lines: Sequence[str], stop: Optional[re.Pattern[str]]) -> tuple[list[str], Optional[int]]:
    if stop is None:
        return list(lines), None
    for idx, line in enumerate(lines):
        if stop.search(line):
            return list(lines[:idx]), idx
    return list(lines), None
