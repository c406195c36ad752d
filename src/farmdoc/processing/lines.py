from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any, Sequence

_LINE_SPLIT_RE = re.compile(r"\r?\n|\r")
_WS_RE = re.compile(r"\s+")


def collapse_ws(value: str) -> str:
    # \s covers \xa0 and other unicode spaces in py3 str patterns
    return _WS_RE.sub(" ", value).strip()


def normalize_lines(text: str | None) -> list[str]:
    """Split raw text into trimmed, whitespace-collapsed, non-empty lines."""
    if not text:
        return []
    lines = (collapse_ws(line) for line in _LINE_SPLIT_RE.split(text))
    return [line for line in lines if line]


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value).strip()


def row_text(row: Sequence[Any] | None) -> str:
    return " ".join(t for t in (cell_text(c) for c in (row or ())) if t)


def is_blank_row(row: Sequence[Any] | None) -> bool:
    if not row:
        return True
    return all(cell_text(c) == "" for c in row)
