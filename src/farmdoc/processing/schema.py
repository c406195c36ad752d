"""Schema resolution for one section.

A detected header wins and is persisted as the family's snapshot. Without a
header the names come from, in order: the persisted snapshot, an externally
supplied fallback list, the built-in default (a shape-probed layout variant or
a default name list), and finally synthetic ``Col_N`` names. Resolution is
total: some schema is always produced.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Sequence

from structlog import get_logger

from farmdoc.processing.fields import normalize_boolean, normalize_number
from farmdoc.processing.header import dedupe_headers, placeholder_name
from farmdoc.processing.lines import is_blank_row
from farmdoc.processing.models import FieldSpec, FieldType, Schema
from farmdoc.storage.snapshots import SnapshotStore

logger = get_logger(__name__)

SOURCE_HEADER = "header"
SOURCE_SNAPSHOT = "snapshot"
SOURCE_FALLBACK = "fallback"
SOURCE_VARIANT = "variant"
SOURCE_DEFAULT = "default"
SOURCE_SYNTHETIC = "synthetic"


class Shape(str, Enum):
    BLANK = "blank"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    ANY = "any"


_SHAPE_DATE_RES = (
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"),
)
_SHAPE_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")


def _shape_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def matches_shape(value: Any, shape: Shape) -> bool:
    if shape is Shape.ANY:
        return True
    if shape is Shape.BLANK:
        s = _shape_text(value)
        return s == "" or s.lower() == "null"
    if shape is Shape.NUMBER:
        return normalize_number(value) is not None
    if shape is Shape.BOOLEAN:
        return isinstance(value, str) and normalize_boolean(value) is not None
    if shape is Shape.DATE:
        if isinstance(value, (date, datetime)):
            return True
        s = _shape_text(value)
        return any(rx.match(s) for rx in _SHAPE_DATE_RES)
    if shape is Shape.TIME:
        if isinstance(value, time):
            return True
        return bool(_SHAPE_TIME_RE.match(_shape_text(value)))
    return False


@dataclass(frozen=True)
class SchemaVariant:
    """A known layout with the positional shapes that identify it."""

    schema: Schema
    probe: tuple[tuple[int, Shape], ...] = ()

    @property
    def name(self) -> str:
        return self.schema.name

    def accepts(self, row: Sequence[Any]) -> bool:
        for pos, shape in self.probe:
            value = row[pos] if pos < len(row) else None
            if not matches_shape(value, shape):
                return False
        return True


def choose_variant(variants: Sequence[SchemaVariant], rows: Sequence[Sequence[Any]]) -> tuple[SchemaVariant, bool]:
    """Pick a variant by probing the first non-empty row.

    Returns (variant, ambiguous). When no probe succeeds the most specific
    variant (largest field count) is returned with ambiguous=True.
    """
    if not variants:
        raise ValueError("choose_variant needs at least one variant")
    most_specific = max(variants, key=lambda v: len(v.schema))
    first = next((r for r in rows if not is_blank_row(r)), None)
    if first is None:
        return most_specific, False
    for variant in variants:
        if variant.accepts(first):
            return variant, False
    return most_specific, True


@dataclass(frozen=True)
class TypeRule:
    """Name-based type inference; ``pattern`` is searched in the lowercased name."""

    pattern: str
    type: FieldType
    vocabulary: Optional[str] = None

    def matches(self, name: str) -> bool:
        return re.search(self.pattern, name.lower()) is not None


def infer_schema(name: str, names: Sequence[str], rules: Sequence[TypeRule] = ()) -> Schema:
    specs = []
    for field_name in names:
        rule = next((r for r in rules if r.matches(field_name)), None)
        if rule is None:
            specs.append(FieldSpec(field_name))
        else:
            specs.append(FieldSpec(field_name, rule.type, vocabulary=rule.vocabulary))
    return Schema(name=name, fields=tuple(specs))


def synthetic_names(rows: Sequence[Sequence[Any]]) -> list[str]:
    width = max((len(r) for r in rows), default=0)
    return [placeholder_name(i) for i in range(width)]


@dataclass
class Resolution:
    schema: Schema
    source: str
    variant: Optional[str] = None
    ambiguous: bool = False


@dataclass
class SchemaResolver:
    store: SnapshotStore
    type_rules: Sequence[TypeRule] = field(default_factory=tuple)

    def from_header(self, snapshot_key: str, header: Sequence[Any]) -> Resolution:
        names = dedupe_headers(header)
        has_names = any(str(h).strip() for h in header if h is not None)
        if has_names:
            self.store.save(snapshot_key, names)
            logger.info("snapshot_saved", snapshot_key=snapshot_key, columns=len(names))
        return Resolution(infer_schema(snapshot_key, names, self.type_rules), SOURCE_HEADER)

    def without_header(
        self,
        snapshot_key: str,
        rows: Sequence[Sequence[Any]],
        *,
        fallback_names: Optional[Sequence[str]] = None,
        default_names: Optional[Sequence[str]] = None,
        variants: Sequence[SchemaVariant] = (),
    ) -> Resolution:
        snapshot = self.store.load(snapshot_key)
        if snapshot:
            return self._named(snapshot_key, snapshot, SOURCE_SNAPSHOT)
        if fallback_names:
            return self._named(snapshot_key, fallback_names, SOURCE_FALLBACK)
        if variants:
            variant, ambiguous = choose_variant(variants, rows)
            if ambiguous:
                logger.warning("schema_ambiguous", snapshot_key=snapshot_key, chosen=variant.name)
            return Resolution(variant.schema, SOURCE_VARIANT, variant=variant.name, ambiguous=ambiguous)
        if default_names:
            return self._named(snapshot_key, default_names, SOURCE_DEFAULT)
        return self._named(snapshot_key, synthetic_names(rows), SOURCE_SYNTHETIC)

    def _named(self, snapshot_key: str, names: Sequence[str], source: str) -> Resolution:
        schema = infer_schema(snapshot_key, dedupe_headers(names), self.type_rules)
        return Resolution(schema, source)
