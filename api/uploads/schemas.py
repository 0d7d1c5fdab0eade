"""
Pydantic schemas for upload endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .store import UploadRecord


class UploadMeta(BaseModel):
    id: int
    original_name: str = Field(serialization_alias="originalName")
    mime_type: str = Field(serialization_alias="mimeType")
    size: int
    uploaded_at: datetime = Field(serialization_alias="uploadedAt")
    delimiter: str
    has_header: bool = Field(serialization_alias="hasHeader")

    @classmethod
    def from_record(cls, record: UploadRecord) -> "UploadMeta":
        return cls(
            id=record.id,
            original_name=record.original_name,
            mime_type=record.mime_type,
            size=record.size_bytes,
            uploaded_at=record.uploaded_at,
            delimiter=record.delimiter,
            has_header=record.has_header,
        )


def latest_envelope(record: UploadRecord) -> dict:
    return {
        "ok": True,
        "latest": UploadMeta.from_record(record).model_dump(by_alias=True, mode="json"),
    }
