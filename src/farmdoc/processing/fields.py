"""Per-field literal normalization.

Every normalizer is total (never raises) and idempotent: feeding a canonical
value back in returns it unchanged. Unparseable input becomes ``None``.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime, time
from typing import Any, Callable, Optional, Sequence

from farmdoc.processing.lines import collapse_ws
from farmdoc.processing.models import FieldSpec, FieldType, Schema

_DATE_YMD_RE = re.compile(r"^(\d{4})[-./](\d{1,2})[-./](\d{1,2})$")
_DATE_DMY_RE = re.compile(r"^(\d{1,2})[-./](\d{1,2})[-./](\d{4})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_SPACE_DECIMAL_RE = re.compile(r"^(-?\d+) (\d{2})$")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

TRUE_LITERALS = frozenset({"taip", "yes", "true"})
FALSE_LITERALS = frozenset({"ne", "no", "false"})

# vocabulary -> ordered (folded prefix, canonical label)
CATEGORY_VOCABULARIES: dict[str, tuple[tuple[str, str], ...]] = {
    "sex": (
        ("buliu", "Bulius"),  # Bulius, Buliukas
        ("karv", "Karvė"),  # Karvė, Karve
        ("tely", "Telyčaitė"),  # Telyčaitė, Telytė, Telyte, Telyčia, Telycia
    ),
}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def fold(value: str) -> str:
    """Lowercase and strip diacritics."""
    decomposed = unicodedata.normalize("NFKD", value.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_date(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if _blank(value) or not isinstance(value, str):
        return None
    s = value.strip()
    m = _DATE_YMD_RE.match(s)
    if m:
        y, mo, d = m.group(1), m.group(2), m.group(3)
    else:
        m = _DATE_DMY_RE.match(s)
        if not m:
            return None
        d, mo, y = m.group(1), m.group(2), m.group(3)
    try:
        return date(int(y), int(mo), int(d)).isoformat()
    except ValueError:
        return None


def normalize_time(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if _blank(value):
        return None
    s = str(value).strip()
    m = _TIME_RE.match(s)
    if m:
        return f"{int(m.group(1)):02d}:{m.group(2)}"
    return s


def normalize_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if _blank(value) or not isinstance(value, str):
        return None
    s = collapse_ws(value)
    m = _SPACE_DECIMAL_RE.match(s)
    if m:
        s = f"{m.group(1)}.{m.group(2)}"
    s = re.sub(r"\s", "", s)
    if "." in s and "," in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif s.count(",") == 1:
        s = s.replace(",", ".")
    elif s.count(",") > 1 or s.count(".") > 1:
        # repeated single separator: thousands grouping
        s = s.replace(",", "").replace(".", "")
    if not _NUMBER_RE.match(s):
        return None
    try:
        return float(s)
    except ValueError:
        return None


def normalize_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if _blank(value) or not isinstance(value, str):
        return None
    s = value.strip().lower()
    if s in TRUE_LITERALS:
        return True
    if s in FALSE_LITERALS:
        return False
    return None


def capitalize_label(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


def normalize_category(value: Any, vocabulary: Optional[str] = None) -> Optional[str]:
    if _blank(value):
        return None
    s = collapse_ws(str(value))
    folded = fold(s)
    for prefix, label in CATEGORY_VOCABULARIES.get(vocabulary or "", ()):
        if folded.startswith(prefix):
            return label
    return capitalize_label(s)


def normalize_text(value: Any, lowercase: bool = False) -> Optional[str]:
    if _blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        s = str(int(value))
    elif isinstance(value, (datetime, date, time)):
        s = value.isoformat()
    else:
        s = str(value).strip()
    return s.lower() if lowercase else s


def normalize_free_text(value: Any) -> Optional[str]:
    if _blank(value):
        return None
    return collapse_ws(str(value))


_DISPATCH: dict[FieldType, Callable[[FieldSpec, Any], Any]] = {
    FieldType.DATE: lambda spec, v: normalize_date(v),
    FieldType.TIME: lambda spec, v: normalize_time(v),
    FieldType.NUMBER: lambda spec, v: normalize_number(v),
    FieldType.BOOLEAN: lambda spec, v: normalize_boolean(v),
    FieldType.CATEGORY: lambda spec, v: normalize_category(v, spec.vocabulary),
    FieldType.FREE_TEXT: lambda spec, v: normalize_free_text(v),
    FieldType.IDENTITY_TAG: lambda spec, v: normalize_text(v),
    FieldType.TEXT: lambda spec, v: normalize_text(v, spec.lowercase),
}


def normalize_value(spec: FieldSpec, value: Any) -> Any:
    return _DISPATCH[spec.type](spec, value)


def build_record(schema: Schema, values: Sequence[Any]) -> dict[str, Any]:
    """Map positional raw values onto the schema, padding or truncating."""
    record: dict[str, Any] = {}
    for pos, spec in enumerate(schema.fields):
        raw = values[pos] if pos < len(values) else None
        record[spec.name] = normalize_value(spec, raw)
    return record


def build_record_from_mapping(schema: Schema, values: dict[str, Any]) -> dict[str, Any]:
    return {spec.name: normalize_value(spec, values.get(spec.name)) for spec in schema.fields}
