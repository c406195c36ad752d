"""Row-shape patterns for free-text sections.

Each pattern is a strategy ``line -> fields | None`` applied with
``fullmatch``. Cascades are ordered from most to least specific and the first
pattern that accepts the whole line wins; lines nobody accepts are skipped.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

LIT = "A-Za-zĄČĘĖĮŠŲŪŽąčęėįšųūž"
WORD = f"[{LIT}'’.-]+"
WORDS = f"[{LIT} '’.-]+"

DATE = r"(?:\d{4}[-./]\d{2}[-./]\d{2}|\d{2}[-./]\d{2}[-./]\d{4})"
ISO_DATE = r"\d{4}-\d{2}-\d{2}"
TAG = r"[A-Z]{2}\d+"
SEX = "(?:Karvė|Karve|Telyčaitė|Telytė|Telyte|Telyčia|Telycia|Bulius|Buliukas)"
PASSPORT = r"[A-Z0-9][A-Z0-9/-]*"

# Free-text breed: non-greedy, bounded by the date that follows it
BREED_TO_DATE = r"(?P<breed>.+?)(?=\s*" + DATE + r")"
# Date literals have a fixed width, so an age glued to the date still splits
DATE_AGE = r"\s*(?P<birth_date>" + DATE + r")\s*(?P<age_months>\d+)"
TRAILING_PASSPORT = r"(?:\s+(?P<passport>" + PASSPORT + r"))?"

UNIT = f"[{LIT}%/.]{{1,8}}"
NUM = r"(?:\d{1,3}(?:[ .]\d{3})*|\d+)(?:[.,]\d{2,4})?"
# Article codes carry at least one digit
SKU = r"(?:(?P<sku>(?=[A-Z._-]*\d)[A-Z0-9._-]{2,})\s+)?"


@dataclass(frozen=True)
class RowPattern:
    name: str
    regex: re.Pattern[str]

    @classmethod
    def compile(cls, name: str, pattern: str, flags: int = 0) -> "RowPattern":
        return cls(name=name, regex=re.compile(pattern, flags))

    def match(self, line: str) -> Optional[dict[str, str]]:
        m = self.regex.fullmatch(line)
        if m is None:
            return None
        return {k: v for k, v in m.groupdict().items() if v is not None}


@dataclass
class TokenizedRow:
    pattern: str
    fields: dict[str, str]
    line: str


@dataclass
class TokenizeResult:
    rows: list[TokenizedRow] = field(default_factory=list)
    skipped_lines: list[str] = field(default_factory=list)
    hits: Counter = field(default_factory=Counter)

    @property
    def skipped(self) -> int:
        return len(self.skipped_lines)


def match_line(line: str, patterns: Sequence[RowPattern]) -> Optional[TokenizedRow]:
    for pattern in patterns:
        fields = pattern.match(line)
        if fields is not None:
            return TokenizedRow(pattern=pattern.name, fields=fields, line=line)
    return None


def tokenize(lines: Iterable[str], patterns: Sequence[RowPattern]) -> TokenizeResult:
    result = TokenizeResult()
    for line in lines:
        row = match_line(line, patterns)
        if row is None:
            result.skipped_lines.append(line)
            continue
        result.rows.append(row)
        result.hits[row.pattern] += 1
    return result


LIVESTOCK_PATTERNS: tuple[RowPattern, ...] = (
    RowPattern.compile(
        "full",
        r"(?P<row_index>\d+)\s+(?P<species>\S+)\s+(?P<tag_no>" + TAG + r")\s+(?P<name>\S+)\s+"
        r"(?P<sex>" + SEX + r")\s+" + BREED_TO_DATE + DATE_AGE + TRAILING_PASSPORT,
    ),
    RowPattern.compile(
        "unnamed",
        r"(?P<row_index>\d+)\s+(?P<species>\S+)\s+(?P<tag_no>" + TAG + r")\s+"
        r"(?P<sex>" + SEX + r")\s+" + BREED_TO_DATE + DATE_AGE + TRAILING_PASSPORT,
    ),
    # Extracted text with no separators between columns
    RowPattern.compile(
        "compact",
        r"(?P<row_index>\d+)\s*(?P<species>Galvijai)\s*(?P<tag_no>(?:DE|LT)\d+)\s*"
        r"(?:(?P<name>" + WORD + r")\s*)?(?P<sex>" + SEX + r")\s*(?P<breed>" + WORDS + r")?"
        r"(?P<birth_date>" + ISO_DATE + r")(?P<age_months>\d+)(?:\s*(?P<passport>[A-Z]{2}-\d+))?",
        re.IGNORECASE,
    ),
    RowPattern.compile(
        "loose",
        r"(?P<row_index>\d+)\s+(?P<species>\S+)\s+(?P<tag_no>" + TAG + r")\s+(?P<name>\S+)\s+"
        r"(?P<sex>\S+)\s+" + BREED_TO_DATE + DATE_AGE + TRAILING_PASSPORT,
    ),
    RowPattern.compile(
        "minimal",
        r"(?P<row_index>\d+)\s+(?P<tag_no>" + TAG + r")\s+(?P<sex>\S+)\s+"
        r"(?P<birth_date>" + DATE + r")\s*(?P<age_months>\d+)",
    ),
)

INVOICE_PATTERNS: tuple[RowPattern, ...] = (
    # description qty [unit] price vat% net vat gross
    RowPattern.compile(
        "full",
        SKU + r"(?P<description>.+?)\s+(?P<qty>" + NUM + r")(?:\s*(?P<unit>" + UNIT + r"))?\s+"
        r"(?P<unit_price>" + NUM + r")\s+(?P<vat_rate>\d{1,2})\s*%?\s+(?P<net>" + NUM + r")\s+"
        r"(?P<vat>" + NUM + r")\s+(?P<gross>" + NUM + r")\s*",
        re.IGNORECASE,
    ),
    # description qty unit price sum
    RowPattern.compile(
        "four",
        SKU + r"(?P<description>.+?)\s+(?P<qty>" + NUM + r")\s+(?P<unit>" + UNIT + r")\s+"
        r"(?P<unit_price>" + NUM + r")\s+(?P<net>" + NUM + r")\s*",
        re.IGNORECASE,
    ),
    RowPattern.compile(
        "minimal",
        SKU + r"(?P<description>.+?)\s+(?P<qty>" + NUM + r")(?:\s*(?P<unit>" + UNIT + r"))?\s+"
        r"(?P<unit_price>" + NUM + r")(?:\s+(?P<gross>" + NUM + r"))?\s*",
        re.IGNORECASE,
    ),
)
