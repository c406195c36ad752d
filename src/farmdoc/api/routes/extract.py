from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from structlog import get_logger

from farmdoc.core.errors import ExtractionError, MissingMarkerError, UnknownFamilyError
from farmdoc.core.logging import document_context
from farmdoc.core.metrics import observe_extraction, observe_failure
from farmdoc.core.settings import get_settings
from farmdoc.processing import sources
from farmdoc.processing.families import DocumentFamily, get_family
from farmdoc.processing.pipeline import expects_text, extract
from farmdoc.storage.snapshots import SnapshotStore, get_snapshot_store


router = APIRouter(prefix="/extract")
logger = get_logger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


class RawPayload(BaseModel):
    text: Optional[str] = None
    rows: Optional[list[list[Any]]] = None
    fallback_headers: Optional[list[str]] = None


def snapshot_store() -> SnapshotStore:
    return get_snapshot_store()


def _family_or_404(name: str) -> DocumentFamily:
    try:
        return get_family(name)
    except UnknownFamilyError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _fallback(family: str, explicit: Optional[list[str]]) -> Optional[list[str]]:
    names = [n.strip() for n in (explicit or []) if n and n.strip()]
    return names or get_settings().fallback_for(family) or None


def _run(fam: DocumentFamily, raw: Any, store: SnapshotStore, fallback: Optional[list[str]]) -> JSONResponse:
    try:
        with document_context(fam.name):
            result = extract(raw, fam, store=store, fallback_names=fallback)
    except MissingMarkerError as e:
        observe_failure(fam.name, e.code)
        logger.info("extract_failed", family=fam.name, reason=e.code, missing=e.missing)
        return JSONResponse(status_code=422, content=e.to_dict(), headers=NO_STORE)
    except ExtractionError as e:
        observe_failure(fam.name, e.code)
        logger.info("extract_failed", family=fam.name, reason=e.code)
        return JSONResponse(status_code=400, content=e.to_dict(), headers=NO_STORE)
    observe_extraction(fam.name, result.count, result.skipped)
    return JSONResponse(result.to_dict(), headers=NO_STORE)


@router.post("/{family}")
async def extract_upload(
    family: str,
    request: Request,
    file: UploadFile | None = File(default=None),
    fallback_headers: Optional[str] = Query(default=None, description="Comma-separated field names"),
    store: SnapshotStore = Depends(snapshot_store),
) -> JSONResponse:
    fam = _family_or_404(family)
    if file is not None:
        data = await file.read()
        filename = file.filename
    else:
        data = await request.body()
        filename = None
    if not data:
        raise HTTPException(status_code=400, detail='Empty body; send multipart "file" or raw document bytes')
    if len(data) > get_settings().max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail="Document too large")
    logger.info("extract_request", family=fam.name, filename=filename, size_bytes=len(data))

    try:
        raw: Any = sources.load_text(data, filename) if expects_text(fam) else sources.load_grid(data, filename)
    except ExtractionError as e:
        observe_failure(fam.name, e.code)
        return JSONResponse(status_code=400, content=e.to_dict(), headers=NO_STORE)

    explicit = fallback_headers.split(",") if fallback_headers else None
    return _run(fam, raw, store, _fallback(fam.name, explicit))


@router.post("/{family}/raw")
def extract_raw(
    family: str,
    payload: RawPayload,
    store: SnapshotStore = Depends(snapshot_store),
) -> JSONResponse:
    fam = _family_or_404(family)
    if payload.text is None and payload.rows is None:
        raise HTTPException(status_code=400, detail='Provide "text" or "rows"')
    raw: Any = payload.text if payload.text is not None else payload.rows
    return _run(fam, raw, store, _fallback(fam.name, payload.fallback_headers))
