from farmdoc.processing.dedup import dedupe_records


def test_first_occurrence_wins_and_order_is_kept() -> None:
    records = [
        {"tag": "LT1", "n": 1},
        {"tag": "LT2", "n": 2},
        {"tag": "LT1", "n": 3},
        {"tag": None, "n": 4},
        {"tag": "LT3", "n": 5},
    ]
    out = dedupe_records(records, "tag")
    assert [r["n"] for r in out] == [1, 2, 5]


def test_dedupe_is_idempotent() -> None:
    records = [{"tag": "a"}, {"tag": "a"}, {"tag": "b"}]
    once = dedupe_records(records, "tag")
    assert dedupe_records(once, "tag") == once


def test_no_identity_field_keeps_everything() -> None:
    records = [{"tag": "a"}, {"tag": "a"}]
    assert dedupe_records(records, None) == records
