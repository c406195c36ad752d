"""Extraction entry points.

One call processes one already-materialized document (a text blob or a grid
of cells) for one document family. The only side effect is the header
snapshot written through the injected store when a grid section carries its
own header.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence, Union

from structlog import get_logger

from farmdoc.core.errors import EmptyInputError, ExtractionError
from farmdoc.processing.dedup import dedupe_records
from farmdoc.processing.families import TEXT, DocumentFamily, SectionSpec, get_family
from farmdoc.processing.fields import build_record, build_record_from_mapping
from farmdoc.processing.header import detect_header, detect_header_line
from farmdoc.processing.lines import is_blank_row, normalize_lines, row_text
from farmdoc.processing.models import ExtractionResult, SectionMetadata, SectionResult
from farmdoc.processing.patterns import match_line, tokenize
from farmdoc.processing.schema import SchemaResolver
from farmdoc.processing.sections import (
    Section,
    apply_start_anchor,
    apply_stop_pattern,
    drop_blank_rows,
    split_sections,
)
from farmdoc.storage.snapshots import SnapshotStore

logger = get_logger(__name__)

SOURCE_PATTERN = "pattern"

FallbackNames = Union[Sequence[str], Mapping[str, Sequence[str]], None]
Grid = Sequence[Sequence[Any]]


def _family(family: Union[str, DocumentFamily]) -> DocumentFamily:
    return family if isinstance(family, DocumentFamily) else get_family(family)


def _fallback_for(fallback_names: FallbackNames, section: str) -> list[str]:
    if not fallback_names:
        return []
    if isinstance(fallback_names, Mapping):
        names = fallback_names.get(section) or []
    else:
        names = fallback_names
    return [str(n).strip() for n in names if n is not None and str(n).strip()]


def _identity_column(fam: DocumentFamily, columns: Sequence[str]) -> str | None:
    if fam.identity_field is None:
        return None
    wanted = fam.identity_field.lower()
    return next((c for c in columns if c.lower() == wanted), None)


def _dedupe(fam: DocumentFamily, records: list[dict[str, Any]], columns: Sequence[str]) -> tuple[list[dict[str, Any]], int]:
    # Schemas without the identity column (synthetic, foreign headers) are not de-duplicated
    identity = _identity_column(fam, columns)
    if identity is None:
        return records, 0
    unique = dedupe_records(records, identity)
    return unique, len(records) - len(unique)


def _paired(fam: DocumentFamily, sections: list[Section]) -> list[tuple[SectionSpec, Section]]:
    if fam.markers:
        return list(zip(fam.sections, sections))
    # A single unmarked section takes the family's section name
    spec = fam.sections[0]
    section = sections[0]
    section.name = spec.name
    return [(spec, section)]


def extract_text(text: str, family: Union[str, DocumentFamily]) -> ExtractionResult:
    """Recover records from a linearized text blob (e.g. PDF text)."""
    fam = _family(family)
    lines = normalize_lines(text)
    if not lines:
        raise EmptyInputError()

    body, anchor_at = apply_start_anchor(lines, fam.start_anchor)
    sections = split_sections(body, fam.markers, names=[s.name for s in fam.sections])

    def matches_row(line: str) -> bool:
        return match_line(line, fam.patterns) is not None

    results: list[SectionResult] = []
    for spec, section in _paired(fam, sections):
        schema = spec.variants[0].schema
        rows, stop_at = apply_stop_pattern(section.rows, fam.stop_pattern)
        header_detected = bool(rows) and detect_header_line(rows[0], matches_row)
        if header_detected:
            rows = rows[1:]

        tokens = tokenize(rows, fam.patterns)
        records = [build_record_from_mapping(schema, row.fields) for row in tokens.rows]
        if fam.postprocess is not None:
            records = fam.postprocess(records)
        records, dropped = _dedupe(fam, records, schema.names)

        meta = SectionMetadata(
            schema_source=SOURCE_PATTERN,
            columns=schema.names,
            variant=schema.name,
            header_detected=header_detected,
            row_count=len(records),
            skipped=tokens.skipped,
            duplicates_dropped=dropped,
            patterns=dict(tokens.hits),
        )
        if tokens.skipped:
            logger.info("rows_skipped", family=fam.name, section=spec.name, skipped=tokens.skipped)
        logger.info(
            "section_resolved",
            family=fam.name,
            section=spec.name,
            count=len(records),
            patterns=meta.patterns,
            anchor_line=anchor_at,
            stop_line=stop_at,
        )
        results.append(SectionResult(name=spec.name, columns=schema.names, records=records, metadata=meta))

    document = None
    if fam.document_parser is not None:
        document = fam.document_parser("\n".join(lines), [r for s in results for r in s.records])
    return ExtractionResult(family=fam.name, sections=results, document=document)


def _probe_says_data(spec: SectionSpec, row: Sequence[Any]) -> bool:
    return any(v.probe and v.accepts(row) for v in spec.variants)


def extract_grid(
    rows: Grid,
    family: Union[str, DocumentFamily],
    *,
    store: SnapshotStore,
    fallback_names: FallbackNames = None,
) -> ExtractionResult:
    """Recover records from a row-major grid of spreadsheet cells."""
    fam = _family(family)
    grid = [list(r) if r is not None else [] for r in rows]
    if not grid or all(is_blank_row(r) for r in grid):
        raise EmptyInputError()

    sections = split_sections(grid, fam.markers, names=[s.name for s in fam.sections])
    resolver = SchemaResolver(store=store, type_rules=fam.type_rules)

    results: list[SectionResult] = []
    for spec, section in _paired(fam, sections):
        data, blank_rows = drop_blank_rows(section.rows)
        key = fam.snapshot_key(spec)

        header_detected = (
            spec.detect_header
            and bool(data)
            and detect_header(data[0])
            and not _probe_says_data(spec, data[0])
        )
        if header_detected:
            resolution = resolver.from_header(key, data[0])
            data = data[1:]
        else:
            resolution = resolver.without_header(
                key,
                data,
                fallback_names=_fallback_for(fallback_names, spec.name),
                default_names=spec.default_names,
                variants=spec.variants,
            )

        schema = resolution.schema
        records = [build_record(schema, row) for row in data]
        records, dropped = _dedupe(fam, records, schema.names)

        meta = SectionMetadata(
            schema_source=resolution.source,
            columns=schema.names,
            variant=resolution.variant,
            ambiguous=resolution.ambiguous,
            header_detected=header_detected,
            snapshot_key=key,
            row_count=len(records),
            blank_rows=blank_rows,
            duplicates_dropped=dropped,
        )
        logger.info(
            "section_resolved",
            family=fam.name,
            section=spec.name,
            schema_source=resolution.source,
            variant=resolution.variant,
            count=len(records),
        )
        results.append(SectionResult(name=spec.name, columns=schema.names, records=records, metadata=meta))

    return ExtractionResult(family=fam.name, sections=results)


def extract(
    raw: Union[str, Grid],
    family: Union[str, DocumentFamily],
    *,
    store: SnapshotStore,
    fallback_names: FallbackNames = None,
) -> ExtractionResult:
    """Dispatch on the family input kind; grids handed to a text family are joined per row."""
    fam = _family(family)
    if fam.input_kind == TEXT:
        if not isinstance(raw, str):
            raw = "\n".join(row_text(r) for r in raw)
        return extract_text(raw, fam)
    if isinstance(raw, str):
        raise ExtractionError(f"Family {fam.name!r} expects a cell grid, got text")
    return extract_grid(raw, fam, store=store, fallback_names=fallback_names)


def expects_text(family: Union[str, DocumentFamily]) -> bool:
    return _family(family).input_kind == TEXT

