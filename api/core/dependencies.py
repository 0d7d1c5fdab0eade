"""
FastAPI dependencies for process-wide objects created in `api/main.py`.
"""

from __future__ import annotations

from fastapi import Request

from core.settings import Settings
from uploads.store import UploadStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> UploadStore:
    return request.app.state.upload_store
