from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from farmdoc import __version__
from farmdoc.core.settings import get_settings
from farmdoc.processing.families import FAMILIES


router = APIRouter()


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/version")
def version() -> dict[str, str | None]:
    settings = get_settings()
    return {
        "version": settings.build_version or __version__,
        "git_commit": settings.build_git_commit,
        "build_time": settings.build_time or datetime.now(timezone.utc).isoformat(),
    }


@router.get("/families")
def families() -> dict[str, Any]:
    return {"families": [f.describe() for f in FAMILIES.values()]}
