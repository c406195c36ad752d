from __future__ import annotations

from typing import Any, Iterable, Optional


def dedupe_records(records: Iterable[dict[str, Any]], identity_field: Optional[str]) -> list[dict[str, Any]]:
    """Keep the first record per identity value, in encounter order.

    Records without an identity value are dropped. ``identity_field=None``
    disables de-duplication.
    """
    if identity_field is None:
        return list(records)
    seen: set[Any] = set()
    out: list[dict[str, Any]] = []
    for rec in records:
        key = rec.get(identity_field)
        if key is None or key in seen:
            continue
        seen.add(key)
        out.append(rec)
    return out
