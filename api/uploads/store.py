"""
Upload store interface and record types.

A store keeps "the latest upload": its payload and the metadata captured at
ingestion time. Backends:
- `postgres`: one row per upload, latest = max (uploaded_at, id)
- `filesystem`: one blob per upload plus a pointer file naming the latest
- `memory`: process-local, for tests and local runs
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import datetime

from core.once import Once

DEFAULT_MIME_TYPE = "text/plain"


@dataclass(frozen=True)
class UploadRecord:
    id: int
    original_name: str
    mime_type: str
    size_bytes: int
    uploaded_at: datetime
    delimiter: str
    has_header: bool


@dataclass(frozen=True)
class StoredUpload:
    record: UploadRecord
    content: bytes


class UploadStore(abc.ABC):
    """
    Every public operation runs `ensure_ready()` first.

    Errors are raised as `core.errors` types; an empty store is `None`, not an error.
    """

    backend: str = ""

    def __init__(self) -> None:
        self._ready = Once(self._initialize)

    @property
    def configured(self) -> bool:
        return True

    async def ensure_ready(self) -> None:
        await self._ready()

    @abc.abstractmethod
    async def _initialize(self) -> None:
        """Create the table / directory. Called at most once successfully."""

    @abc.abstractmethod
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
        """Durably record a new latest upload."""

    @abc.abstractmethod
    async def get_latest(self) -> StoredUpload | None:
        """Latest upload with its payload, or None when nothing was stored."""

    @abc.abstractmethod
    async def get_latest_meta(self) -> UploadRecord | None:
        """Latest upload metadata without reading the payload."""

    @abc.abstractmethod
    async def count(self) -> int:
        """Number of uploads retained by the backend."""

    @abc.abstractmethod
    async def ping(self) -> None:
        """Raise if the backend is not reachable."""

    async def close(self) -> None:
        return None
