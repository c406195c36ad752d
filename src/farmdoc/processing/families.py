"""Known document families.

Every family is data: its sections (marker + known layout variants), the row
patterns for free-text input, name-based type rules for header-derived
schemas, and the identity field used for de-duplication.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from farmdoc.core.errors import UnknownFamilyError
from farmdoc.processing.invoice import derive_line_amounts, parse_invoice_document
from farmdoc.processing.models import FieldSpec, FieldType, Schema
from farmdoc.processing.patterns import INVOICE_PATTERNS, LIVESTOCK_PATTERNS, RowPattern
from farmdoc.processing.schema import SchemaVariant, Shape, TypeRule

TEXT = "text"
GRID = "grid"

T = FieldType


@dataclass(frozen=True)
class SectionSpec:
    name: str
    marker: Optional[str] = None
    variants: tuple[SchemaVariant, ...] = ()
    default_names: tuple[str, ...] = ()
    detect_header: bool = True


@dataclass(frozen=True)
class DocumentFamily:
    name: str
    input_kind: str
    sections: tuple[SectionSpec, ...]
    description: str = ""
    identity_field: Optional[str] = None
    type_rules: tuple[TypeRule, ...] = ()
    patterns: tuple[RowPattern, ...] = ()
    start_anchor: Optional[re.Pattern[str]] = None
    stop_pattern: Optional[re.Pattern[str]] = None
    postprocess: Optional[Callable[[list[dict[str, Any]]], list[dict[str, Any]]]] = None
    document_parser: Optional[Callable[[str, list[dict[str, Any]]], dict[str, Any]]] = None

    @property
    def markers(self) -> list[str]:
        return [s.marker for s in self.sections if s.marker]

    def snapshot_key(self, section: SectionSpec) -> str:
        if len(self.sections) == 1:
            return self.name
        return f"{self.name}:{section.name}"

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "input_kind": self.input_kind,
            "description": self.description,
            "identity_field": self.identity_field,
            "sections": [
                {
                    "name": s.name,
                    "marker": s.marker,
                    "variants": [v.name for v in s.variants],
                }
                for s in self.sections
            ],
        }


# ---------- livestock registry (PDF text) ----------
LIVESTOCK_SCHEMA = Schema.of(
    "livestock_registry",
    FieldSpec("row_index", T.NUMBER),
    FieldSpec("species", T.TEXT, lowercase=True),
    FieldSpec("tag_no", T.IDENTITY_TAG),
    FieldSpec("name", T.TEXT),
    FieldSpec("sex", T.CATEGORY, vocabulary="sex"),
    FieldSpec("breed", T.FREE_TEXT),
    FieldSpec("birth_date", T.DATE),
    FieldSpec("age_months", T.NUMBER),
    FieldSpec("passport", T.TEXT),
)

LIVESTOCK_REGISTRY = DocumentFamily(
    name="livestock_registry",
    input_kind=TEXT,
    description="Animal registry report rows (index, species, tag, name, sex, breed, birth date, age)",
    sections=(SectionSpec("animals", variants=(SchemaVariant(LIVESTOCK_SCHEMA),)),),
    identity_field="tag_no",
    patterns=LIVESTOCK_PATTERNS,
    start_anchor=re.compile(r"Eil\.\s*Nr\.", re.IGNORECASE),
)

# ---------- invoice line items (PDF text) ----------
INVOICE_SCHEMA = Schema.of(
    "invoice_lines",
    FieldSpec("line_no", T.NUMBER),
    FieldSpec("sku", T.TEXT),
    FieldSpec("description", T.FREE_TEXT),
    FieldSpec("qty", T.NUMBER),
    FieldSpec("unit", T.TEXT),
    FieldSpec("unit_price", T.NUMBER),
    FieldSpec("vat_rate", T.NUMBER),
    FieldSpec("net", T.NUMBER),
    FieldSpec("vat", T.NUMBER),
    FieldSpec("gross", T.NUMBER),
)

INVOICE = DocumentFamily(
    name="invoice",
    input_kind=TEXT,
    description="Supplier invoice line items plus supplier and totals block",
    sections=(SectionSpec("lines", variants=(SchemaVariant(INVOICE_SCHEMA),)),),
    patterns=INVOICE_PATTERNS,
    stop_pattern=re.compile(r"(iš viso|viso|bendra suma|total)", re.IGNORECASE),
    postprocess=derive_line_amounts,
    document_parser=parse_invoice_document,
)

# ---------- milking report (spreadsheet, optional header) ----------
MILKING_DEFAULT_NAMES = (
    "karves nr", "kaklo nr", "statusas", "grupe", "pieno vidurkis",
    "melzimo data", "melzimo laikas", "pieno kiekis",
    "melzimo data", "melzimo laikas", "pieno kiekis",
    "melzimo data", "melzimo laikas", "pieno kiekis",
    "melzimo data", "melzimo laikas", "pieno kiekis",
    "melzimo data", "melzimo laikas", "pieno kiekis",
    "dalyvauja pieno gamyboje", "apsiversiavo", "laktacijos dienos", "apseklinimo diena",
)

MILKING_TYPE_RULES = (
    TypeRule(r"^karves nr", T.IDENTITY_TAG),
    TypeRule(r"^statusas", T.CATEGORY),
    TypeRule(r"data", T.DATE),
    TypeRule(r"^(?:apsiversiavo|apseklinimo diena)", T.DATE),
    TypeRule(r"laikas", T.TIME),
    TypeRule(r"^dalyvauja pieno gamyboje", T.BOOLEAN),
    TypeRule(r"^(?:pieno vidurkis|pieno kiekis|laktacijos dienos|kaklo nr|grupe)(?:_\d+)?$", T.NUMBER),
)

MILKING_REPORT = DocumentFamily(
    name="milking_report",
    input_kind=GRID,
    description="Milking system export: one row per cow with repeated milking date/time/yield groups",
    sections=(SectionSpec("milkings", default_names=MILKING_DEFAULT_NAMES),),
    identity_field="karves nr",
    type_rules=MILKING_TYPE_RULES,
)

# ---------- automatic three-part report (spreadsheet) ----------
REPORT_1_SCHEMA = Schema.of(
    "report_1",
    FieldSpec("cow_number", T.IDENTITY_TAG),
    FieldSpec("ear_number", T.NUMBER),
    FieldSpec("cow_state", T.CATEGORY),
    FieldSpec("group_number", T.NUMBER),
    FieldSpec("pregnant_since", T.DATE),
    FieldSpec("lactation_days", T.NUMBER),
    FieldSpec("inseminated_at", T.DATE),
    FieldSpec("pregnant_days", T.NUMBER),
    FieldSpec("next_pregnancy_date", T.DATE),
    FieldSpec("days_until_waiting_pregnancy", T.NUMBER),
)


def _milking_groups(count: int) -> list[FieldSpec]:
    specs: list[FieldSpec] = []
    for i in range(1, count + 1):
        specs += [
            FieldSpec(f"milking_date_{i}", T.DATE),
            FieldSpec(f"milking_time_{i}", T.TIME),
            FieldSpec(f"milking_weight_{i}", T.NUMBER),
        ]
    return specs


_REPORT_2_HEAD = (
    FieldSpec("cow_number", T.IDENTITY_TAG),
    FieldSpec("genetic_worth", T.NUMBER),
    FieldSpec("blood_line", T.TEXT),
)
_REPORT_2_TAIL = (
    FieldSpec("avg_milk_prod_weight", T.NUMBER),
    FieldSpec("produce_milk", T.BOOLEAN),
    FieldSpec("last_milking_date", T.DATE),
    FieldSpec("last_milking_time", T.TIME),
    FieldSpec("last_milking_weight", T.NUMBER),
    *_milking_groups(9),
)

# Column D is present but unused in some exports
REPORT_2_WITH_UNUSED = SchemaVariant(
    Schema.of("with_unused_column", *_REPORT_2_HEAD, FieldSpec("unused_d"), *_REPORT_2_TAIL),
    probe=((3, Shape.BLANK), (4, Shape.NUMBER), (5, Shape.BOOLEAN), (6, Shape.DATE), (7, Shape.TIME)),
)
REPORT_2_WITHOUT_UNUSED = SchemaVariant(
    Schema.of("without_unused_column", *_REPORT_2_HEAD, *_REPORT_2_TAIL),
    probe=((3, Shape.NUMBER), (4, Shape.BOOLEAN), (5, Shape.DATE), (6, Shape.TIME)),
)

REPORT_3_SCHEMA = Schema.of(
    "report_3",
    FieldSpec("cow_number", T.IDENTITY_TAG),
    FieldSpec("teat_missing_right_back"),
    FieldSpec("teat_missing_back_left"),
    FieldSpec("teat_missing_front_left"),
    FieldSpec("teat_missing_front_right"),
    FieldSpec("insemination_count", T.NUMBER),
    FieldSpec("bull_1"),
    FieldSpec("bull_2"),
    FieldSpec("bull_3"),
    FieldSpec("lactation_number", T.NUMBER),
)

AUTOMATIC_REPORT = DocumentFamily(
    name="automatic_report",
    input_kind=GRID,
    description="Herd management export with three marked reports on one sheet",
    # Column layouts are fixed; the first row of each report is always data
    sections=(
        SectionSpec(
            "report_1",
            marker="1 ATASKAITA",
            variants=(SchemaVariant(REPORT_1_SCHEMA),),
            detect_header=False,
        ),
        SectionSpec(
            "report_2",
            marker="2 ATASKAITA",
            variants=(REPORT_2_WITH_UNUSED, REPORT_2_WITHOUT_UNUSED),
            detect_header=False,
        ),
        SectionSpec(
            "report_3",
            marker="3 ATASKAITA",
            variants=(SchemaVariant(REPORT_3_SCHEMA),),
            detect_header=False,
        ),
    ),
    identity_field="cow_number",
)

FAMILIES: dict[str, DocumentFamily] = {
    f.name: f for f in (LIVESTOCK_REGISTRY, INVOICE, MILKING_REPORT, AUTOMATIC_REPORT)
}


def get_family(name: str) -> DocumentFamily:
    try:
        return FAMILIES[name]
    except KeyError:
        raise UnknownFamilyError(name) from None
