"""Header row detection and header name disambiguation.

The header test is a content-shape heuristic, not a guarantee: a row whose
first cell looks like an identity tag is always data, otherwise a row made
mostly of non-numeric strings is taken as a header.
"""
from __future__ import annotations

import re
from typing import Any, Callable, Optional, Sequence

# Two letters + 6 or more digits, or a country prefix glued to digits
TAG_RE = re.compile(r"^(?:[A-Z]{2}\d{6,}|LT\d+|DE\d+)", re.IGNORECASE)
_NON_DIGIT_RE = re.compile(r"\D")

HEADER_STRING_RATIO = 0.5


def looks_like_tag(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    v = value.strip()
    return bool(v) and bool(TAG_RE.match(v))


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def detect_header(row: Optional[Sequence[Any]]) -> bool:
    if not row:
        return False
    if looks_like_tag(row[0]):
        return False
    cells = [c for c in row if _present(c)]
    if not cells:
        return False
    strish = [c for c in cells if isinstance(c, str) and _NON_DIGIT_RE.search(c)]
    return len(strish) / len(cells) >= HEADER_STRING_RATIO


def detect_header_line(line: str, matches_row: Callable[[str], bool]) -> bool:
    """Header test for a free-text line: a line any row pattern accepts is data."""
    if not line or matches_row(line):
        return False
    tokens = line.split(" ")
    # A leading row index or an identity tag marks a malformed data row
    if tokens[0][:1].isdigit() or any(looks_like_tag(t) for t in tokens):
        return False
    return detect_header(tokens)


def placeholder_name(position: int) -> str:
    return f"Col_{position + 1}"


def dedupe_headers(names: Sequence[Any]) -> list[str]:
    """Make header names unique, keeping the bare name on first occurrence.

    Repeats get ``_2``, ``_3``... suffixes; empty names get positional
    placeholders.
    """
    used: set[str] = set()
    counts: dict[str, int] = {}
    out: list[str] = []
    for pos, raw in enumerate(names):
        base = "" if raw is None else str(raw).strip()
        if not base:
            base = placeholder_name(pos)
        if base not in used:
            name = base
            counts[base] = 1
        else:
            n = counts.get(base, 1) + 1
            while f"{base}_{n}" in used:
                n += 1
            counts[base] = n
            name = f"{base}_{n}"
        used.add(name)
        out.append(name)
    return out
