"""
Process-local upload store for tests and local runs.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

from .store import DEFAULT_MIME_TYPE, StoredUpload, UploadRecord, UploadStore


class MemoryUploadStore(UploadStore):
    backend = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._uploads: list[StoredUpload] = []
        self._ids = itertools.count(1)
        self.initialize_calls = 0

    async def _initialize(self) -> None:
        self.initialize_calls += 1

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
        record = UploadRecord(
            id=next(self._ids),
            original_name=original_name,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            size_bytes=size_bytes,
            uploaded_at=datetime.now(timezone.utc),
            delimiter=delimiter,
            has_header=has_header,
        )
        self._uploads.append(StoredUpload(record=record, content=bytes(payload)))
        return record

    async def get_latest(self) -> StoredUpload | None:
        await self.ensure_ready()
        return self._uploads[-1] if self._uploads else None

    async def get_latest_meta(self) -> UploadRecord | None:
        latest = await self.get_latest()
        return latest.record if latest is not None else None

    async def count(self) -> int:
        await self.ensure_ready()
        return len(self._uploads)

    async def ping(self) -> None:
        await self.ensure_ready()
