"""
Upload "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Read upload bytes with a size limit
- Sniff the delimiter and parse the header flag
- Hand the payload to the configured store
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, UploadFile, status

from core.errors import StoreError

from .sniffing import detect_delimiter
from .store import DEFAULT_MIME_TYPE, UploadRecord, UploadStore

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

logger = logging.getLogger(__name__)


def parse_has_header(raw: str | None) -> bool:
    """
    Only an explicit "false" (any case, no surrounding spaces) turns the header flag off.
    """
    return (raw if raw is not None else "true").lower() != "false"


def media_type_for(original_name: str) -> str:
    if (original_name or "").lower().endswith(".csv"):
        return CSV_MEDIA_TYPE
    return TEXT_MEDIA_TYPE


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


async def ingest_upload(
    file: UploadFile,
    *,
    store: UploadStore,
    has_header: bool,
    max_bytes: int,
) -> UploadRecord:
    """
    High-level ingestion step for a single uploaded file.

    This is what the FastAPI router should call.
    """
    data = await read_upload_bytes(file, max_bytes=max_bytes)
    # `replace` keeps sniffing working on text that is not valid UTF-8.
    text = data.decode("utf-8", errors="replace")
    delimiter = detect_delimiter(text)

    try:
        record = await store.put(
            data,
            original_name=file.filename or "",
            mime_type=file.content_type or DEFAULT_MIME_TYPE,
            size_bytes=len(data),
            delimiter=delimiter,
            has_header=has_header,
        )
    except StoreError:
        logger.warning("Upload of %r failed", file.filename)
        raise

    logger.info(
        "Accepted upload %d (%s, %d bytes, delimiter %r)",
        record.id,
        record.original_name,
        record.size_bytes,
        record.delimiter,
    )
    return record
