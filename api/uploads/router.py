"""
FastAPI router for upload endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from starlette.datastructures import UploadFile as StarletteUploadFile

from auth import dependencies as auth_dependencies
from core.dependencies import get_settings, get_store
from core.settings import Settings

from . import schemas, service
from .store import UploadStore

router = APIRouter()

NOT_FOUND_DETAIL = "No file uploaded yet"


@router.post("/upload")
async def upload_file(
    # A plain text "file" field is accepted here so it can be rejected as missing below.
    file: UploadFile | str | None = File(default=None),
    has_header: str | None = Form(default=None, alias="hasHeader"),
    _: None = Depends(auth_dependencies.require_upload_token),
    store: UploadStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Store `file` as the new latest upload.
    """
    if not isinstance(file, StarletteUploadFile):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing file field 'file'",
        )

    record = await service.ingest_upload(
        file,
        store=store,
        has_header=service.parse_has_header(has_header),
        max_bytes=settings.max_upload_bytes,
    )
    return schemas.latest_envelope(record)


@router.get("/latest")
@router.get("/files/latest")
async def get_latest_file(store: UploadStore = Depends(get_store)) -> Response:
    """
    Raw payload of the latest upload.
    """
    latest = await store.get_latest()
    if latest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)

    return Response(
        content=latest.content,
        media_type=service.media_type_for(latest.record.original_name),
    )


@router.get("/uploads/count")
async def count_uploads(store: UploadStore = Depends(get_store)) -> dict:
    return {"ok": True, "count": await store.count()}


@router.get("/uploads/latest/meta")
async def get_latest_meta(store: UploadStore = Depends(get_store)) -> dict:
    record = await store.get_latest_meta()
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
    return schemas.latest_envelope(record)
