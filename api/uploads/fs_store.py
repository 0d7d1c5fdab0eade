"""
Filesystem-backed upload store.

Layout inside the data directory:
- `<timestamp>__<sanitized name>`: one blob per upload, never removed here
- `latest.json`: pointer naming the current blob plus its metadata

The pointer is written to a temp file and moved into place with
`os.replace`, so a reader sees either the old pointer or the new one.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiofiles
import aiofiles.os

from core.errors import StalePointerError, StoreError, StoreUnconfiguredError

from .store import DEFAULT_MIME_TYPE, StoredUpload, UploadRecord, UploadStore

logger = logging.getLogger(__name__)

POINTER_NAME = "latest.json"
BLOB_SEPARATOR = "__"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"
MAX_NAME_CHARS = 120
FALLBACK_NAME = "upload"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(name: str) -> str:
    """
    Reduce a client-supplied filename to a safe single path component.
    """
    base = re.split(r"[\\/]", name or "")[-1]
    safe = _UNSAFE_CHARS.sub("_", base).lstrip("._")
    return safe[:MAX_NAME_CHARS] or FALLBACK_NAME


def blob_name(uploaded_at: datetime, original_name: str) -> str:
    stamp = uploaded_at.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
    return f"{stamp}{BLOB_SEPARATOR}{sanitize_filename(original_name)}"


def _pointer_payload(record: UploadRecord, blob: str) -> dict[str, Any]:
    return {
        "id": record.id,
        "blob": blob,
        "originalName": record.original_name,
        "mimeType": record.mime_type,
        "sizeBytes": record.size_bytes,
        "uploadedAt": record.uploaded_at.isoformat(),
        "delimiter": record.delimiter,
        "hasHeader": record.has_header,
    }


def _record_from_pointer(data: dict[str, Any]) -> tuple[UploadRecord, str]:
    blob = str(data["blob"])
    # Only plain names inside the data directory are acceptable.
    if not blob or Path(blob).name != blob or blob in (".", ".."):
        raise ValueError(f"invalid blob name {blob!r}")

    record = UploadRecord(
        id=int(data["id"]),
        original_name=str(data["originalName"]),
        mime_type=str(data.get("mimeType") or DEFAULT_MIME_TYPE),
        size_bytes=int(data["sizeBytes"]),
        uploaded_at=datetime.fromisoformat(str(data["uploadedAt"])),
        delimiter=str(data["delimiter"]),
        has_header=bool(data["hasHeader"]),
    )
    return record, blob


class FilesystemUploadStore(UploadStore):
    backend = "filesystem"

    def __init__(self, data_dir: Path | str | None) -> None:
        super().__init__()
        self._data_dir = Path(data_dir) if data_dir else None
        # Serializes writers so ids stay monotonic and blob names unique.
        self._put_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self._data_dir is not None

    @property
    def data_dir(self) -> Path:
        if self._data_dir is None:
            raise StoreUnconfiguredError("DATA_DIR is not set.")
        return self._data_dir

    @property
    def pointer_path(self) -> Path:
        return self.data_dir / POINTER_NAME

    async def ensure_ready(self) -> None:
        if not self.configured:
            raise StoreUnconfiguredError("DATA_DIR is not set.")
        await super().ensure_ready()

    async def _initialize(self) -> None:
        try:
            await aiofiles.os.makedirs(self.data_dir, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Failed to create data directory '{self.data_dir}': {exc}") from exc
        logger.info("Upload directory %s is ready", self.data_dir)

    async def _read_pointer(self) -> tuple[UploadRecord, str] | None:
        try:
            async with aiofiles.open(self.pointer_path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Failed to read latest-upload pointer: {exc}") from exc

        try:
            data = json.loads(raw)
            return _record_from_pointer(data)
        except (ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"Latest-upload pointer is corrupt: {exc}") from exc

    async def _write_pointer(self, record: UploadRecord, blob: str) -> None:
        tmp_path = self.data_dir / f".{POINTER_NAME}.{uuid4().hex}.tmp"
        body = json.dumps(_pointer_payload(record, blob), ensure_ascii=True)
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(body)
            await aiofiles.os.replace(tmp_path, self.pointer_path)
        except OSError as exc:
            try:
                await aiofiles.os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise StoreError(f"Failed to update latest-upload pointer: {exc}") from exc

    async def put(
        self,
        payload: bytes,
        *,
        original_name: str,
        mime_type: str,
        size_bytes: int,
        delimiter: str,
        has_header: bool,
    ) -> UploadRecord:
        await self.ensure_ready()

        async with self._put_lock:
            uploaded_at = datetime.now(timezone.utc)
            next_id = 1
            try:
                previous = await self._read_pointer()
            except StoreError as exc:
                # A new upload replaces the pointer anyway; keep ids past every retained blob.
                logger.warning("Replacing unreadable latest-upload pointer: %s", exc)
                previous = None
                next_id = await self._count_blobs() + 1
            if previous is not None:
                next_id = previous[0].id + 1
                # Keeps blob names unique and ordered even within one clock tick.
                uploaded_at = max(uploaded_at, previous[0].uploaded_at + timedelta(microseconds=1))

            blob = blob_name(uploaded_at, original_name)
            try:
                async with aiofiles.open(self.data_dir / blob, "xb") as f:
                    await f.write(payload)
            except OSError as exc:
                raise StoreError(f"Failed to write upload blob '{blob}': {exc}") from exc

            record = UploadRecord(
                id=next_id,
                original_name=original_name,
                mime_type=mime_type or DEFAULT_MIME_TYPE,
                size_bytes=size_bytes,
                uploaded_at=uploaded_at,
                delimiter=delimiter,
                has_header=has_header,
            )
            await self._write_pointer(record, blob)

        logger.info("Stored upload %d as %s", record.id, blob)
        return record

    async def get_latest(self) -> StoredUpload | None:
        await self.ensure_ready()
        pointer = await self._read_pointer()
        if pointer is None:
            return None

        record, blob = pointer
        try:
            async with aiofiles.open(self.data_dir / blob, "rb") as f:
                content = await f.read()
        except FileNotFoundError:
            logger.warning("Latest-upload pointer names missing blob %s", blob)
            raise StalePointerError(blob) from None
        except OSError as exc:
            raise StoreError(f"Failed to read upload blob '{blob}': {exc}") from exc

        return StoredUpload(record=record, content=content)

    async def get_latest_meta(self) -> UploadRecord | None:
        await self.ensure_ready()
        pointer = await self._read_pointer()
        return pointer[0] if pointer is not None else None

    async def _count_blobs(self) -> int:
        try:
            names = await aiofiles.os.listdir(self.data_dir)
        except OSError as exc:
            raise StoreError(f"Failed to list data directory: {exc}") from exc
        return sum(1 for name in names if BLOB_SEPARATOR in name and not name.startswith("."))

    async def count(self) -> int:
        await self.ensure_ready()
        return await self._count_blobs()

    async def ping(self) -> None:
        await self.ensure_ready()
        if not await aiofiles.os.path.isdir(self.data_dir):
            raise StoreError(f"Data directory '{self.data_dir}' does not exist.")
        if not await aiofiles.os.access(self.data_dir, os.W_OK):
            raise StoreError(f"Data directory '{self.data_dir}' is not writable.")
