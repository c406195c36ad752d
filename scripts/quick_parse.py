import json
import sys
from pathlib import Path

# Ensure local package import works when running from repo root
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from farmdoc.core.errors import ExtractionError  # noqa: E402
from farmdoc.core.logging import document_context, setup_structlog  # noqa: E402
from farmdoc.core.settings import get_settings  # noqa: E402
from farmdoc.processing import sources  # noqa: E402
from farmdoc.processing.families import FAMILIES, get_family  # noqa: E402
from farmdoc.processing.pipeline import expects_text, extract  # noqa: E402
from farmdoc.storage.snapshots import get_snapshot_store  # noqa: E402


def main(args: list[str]) -> int:
    if len(args) < 2:
        print(f"usage: quick_parse.py FAMILY FILE [FILE...]  (families: {', '.join(FAMILIES)})")
        return 2

    setup_structlog(get_settings().log_level)
    family = get_family(args[0])
    store = get_snapshot_store()
    failed = 0
    for p in args[1:]:
        path = Path(p)
        if not path.exists():
            print(f"MISSING: {path}")
            failed += 1
            continue
        data = path.read_bytes()
        try:
            with document_context(family.name, filename=path.name):
                raw = sources.load_text(data, path.name) if expects_text(family) else sources.load_grid(data, path.name)
                result = extract(raw, family, store=store)
        except ExtractionError as e:
            print(f"FAIL: {path} -> {json.dumps(e.to_dict(), ensure_ascii=False)}")
            failed += 1
            continue
        print(f"FILE: {path} | records={result.count} | skipped={result.skipped}")
        for section in result.sections:
            meta = section.metadata
            print(f"  [{section.name}] source={meta.schema_source} variant={meta.variant} count={meta.row_count}")
            for rec in section.records[:3]:
                print(f"    {json.dumps(rec, ensure_ascii=False)}")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
