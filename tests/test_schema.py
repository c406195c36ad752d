from datetime import datetime, time

import pytest

from farmdoc.processing.families import REPORT_2_WITH_UNUSED, REPORT_2_WITHOUT_UNUSED
from farmdoc.processing.models import FieldType, Schema
from farmdoc.processing.schema import (
    SOURCE_DEFAULT,
    SOURCE_FALLBACK,
    SOURCE_HEADER,
    SOURCE_SNAPSHOT,
    SOURCE_SYNTHETIC,
    SOURCE_VARIANT,
    SchemaResolver,
    SchemaVariant,
    Shape,
    TypeRule,
    choose_variant,
    infer_schema,
    matches_shape,
)
from farmdoc.storage.snapshots import InMemorySnapshotStore

VARIANTS = (REPORT_2_WITH_UNUSED, REPORT_2_WITHOUT_UNUSED)
ROWS = [["LT1", 5]]


def _resolve(store, **kwargs):
    return SchemaResolver(store=store).without_header("fam", ROWS, **kwargs)


def test_snapshot_beats_fallback_and_defaults() -> None:
    store = InMemorySnapshotStore({"fam": ["x", "y"]})
    res = _resolve(store, fallback_names=["p", "q"], default_names=["d"])
    assert res.source == SOURCE_SNAPSHOT
    assert res.schema.names == ["x", "y"]


def test_fallback_used_without_snapshot() -> None:
    res = _resolve(InMemorySnapshotStore(), fallback_names=["p", "q"], default_names=["d"], variants=VARIANTS)
    assert res.source == SOURCE_FALLBACK
    assert res.schema.names == ["p", "q"]


def test_variant_then_default_then_synthetic() -> None:
    store = InMemorySnapshotStore()
    assert _resolve(store, variants=VARIANTS, default_names=["d"]).source == SOURCE_VARIANT
    res = _resolve(store, default_names=["d", "d"])
    assert res.source == SOURCE_DEFAULT
    assert res.schema.names == ["d", "d_2"]
    res = _resolve(store)
    assert res.source == SOURCE_SYNTHETIC
    assert res.schema.names == ["Col_1", "Col_2"]


def test_header_is_persisted_and_wins() -> None:
    store = InMemorySnapshotStore({"fam": ["old"]})
    resolver = SchemaResolver(store=store)
    res = resolver.from_header("fam", ["Karves nr", "data", "data", None])
    assert res.source == SOURCE_HEADER
    assert res.schema.names == ["Karves nr", "data", "data_2", "Col_4"]
    assert store.load("fam") == ["Karves nr", "data", "data_2", "Col_4"]
    assert resolver.without_header("fam", []).source == SOURCE_SNAPSHOT


def test_type_rules_apply_to_header_names() -> None:
    rules = (TypeRule(r"data", FieldType.DATE), TypeRule(r"^kiekis(?:_\d+)?$", FieldType.NUMBER))
    schema = infer_schema("fam", ["Melzimo data", "Kiekis", "kiekis_2", "Pastaba"], rules)
    assert [f.type for f in schema.fields] == [FieldType.DATE, FieldType.NUMBER, FieldType.NUMBER, FieldType.TEXT]


@pytest.mark.parametrize(
    "value, shape, ok",
    [
        (None, Shape.BLANK, True),
        ("null", Shape.BLANK, True),
        ("x", Shape.BLANK, False),
        ("25,4", Shape.NUMBER, True),
        ("HOL", Shape.NUMBER, False),
        ("Taip", Shape.BOOLEAN, True),
        (True, Shape.BOOLEAN, False),
        ("10/1/25", Shape.DATE, True),
        ("2025-10-01", Shape.DATE, True),
        (datetime(2025, 10, 1), Shape.DATE, True),
        ("6:05", Shape.TIME, True),
        (time(6, 5), Shape.TIME, True),
        ("6h", Shape.TIME, False),
    ],
)
def test_matches_shape(value, shape: Shape, ok: bool) -> None:
    assert matches_shape(value, shape) is ok


def test_probe_picks_layout_with_unused_column() -> None:
    rows = [[None], [1001, 105, "HOL", None, "25,4", "Taip", "2025-10-01", "6:05", "12,3"]]
    variant, ambiguous = choose_variant(VARIANTS, rows)
    assert variant is REPORT_2_WITH_UNUSED
    assert not ambiguous


def test_probe_picks_layout_without_unused_column() -> None:
    rows = [[1001, 105, "HOL", "25,4", "Ne", "10/1/25", "18:10", "12,3"]]
    variant, ambiguous = choose_variant(VARIANTS, rows)
    assert variant is REPORT_2_WITHOUT_UNUSED
    assert not ambiguous


def test_probe_mismatch_takes_most_specific_and_flags_it() -> None:
    rows = [[1001, "x", "y", "z"]]
    variant, ambiguous = choose_variant(VARIANTS, rows)
    assert variant is REPORT_2_WITH_UNUSED
    assert ambiguous
    res = SchemaResolver(store=InMemorySnapshotStore()).without_header("fam", rows, variants=VARIANTS)
    assert res.ambiguous
    assert res.variant == "with_unused_column"


def test_choose_variant_without_data_is_not_ambiguous() -> None:
    small = SchemaVariant(Schema.of("small", "a"))
    big = SchemaVariant(Schema.of("big", "a", "b"), probe=((1, Shape.NUMBER),))
    assert choose_variant((small, big), []) == (big, False)
    with pytest.raises(ValueError):
        choose_variant((), [])
