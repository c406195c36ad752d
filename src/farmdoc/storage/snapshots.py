from __future__ import annotations

import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol, Sequence

from structlog import get_logger

from farmdoc.core.settings import get_settings


logger = get_logger(__name__)


class SnapshotStore(Protocol):
    """Persisted header snapshots keyed by document family."""

    def load(self, family: str) -> Optional[list[str]]:
        ...

    def save(self, family: str, names: Sequence[str]) -> None:
        ...


class InMemorySnapshotStore:
    def __init__(self, initial: Optional[dict[str, Sequence[str]]] = None) -> None:
        self._data: dict[str, list[str]] = {k: list(v) for k, v in (initial or {}).items()}
        self._lock = threading.Lock()

    def load(self, family: str) -> Optional[list[str]]:
        with self._lock:
            names = self._data.get(family)
            return list(names) if names else None

    def save(self, family: str, names: Sequence[str]) -> None:
        with self._lock:
            self._data[family] = list(names)


_UNSAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def _safe_key(family: str) -> str:
    return _UNSAFE_KEY_RE.sub("_", family).strip("._") or "default"


class FileSnapshotStore:
    """One JSON array per family; writes replace the file atomically (last write wins)."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, family: str) -> Path:
        return self.directory / f"{_safe_key(family)}.json"

    def load(self, family: str) -> Optional[list[str]]:
        path = self.path_for(family)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug("snapshot_load_failed", family=family, path=str(path), error=str(e))
            return None
        if not isinstance(data, list) or not data:
            return None
        return [str(name).strip() if name is not None else "" for name in data]

    def save(self, family: str, names: Sequence[str]) -> None:
        path = self.path_for(family)
        payload = json.dumps(list(names), ensure_ascii=False, indent=2)
        tmp_name: Optional[str] = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=str(self.directory))
            with os.fdopen(fd, "w", encoding="utf-8") as w:
                w.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            # Non-fatal: the previous snapshot (if any) stays in place
            logger.warning("snapshot_save_failed", family=family, path=str(path), error=str(e))
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


def get_snapshot_store() -> FileSnapshotStore:
    return FileSnapshotStore(get_settings().snapshot_dir)
