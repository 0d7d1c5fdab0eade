"""
Health endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from core.dependencies import get_store
from core.errors import StoreError
from uploads.store import UploadStore

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/health")
def health(store: UploadStore = Depends(get_store)) -> dict:
    return {"ok": True, "backend": store.backend, "dbConfigured": store.configured}


@router.get("/health/db")
async def health_db(store: UploadStore = Depends(get_store)) -> dict:
    """
    Backend reachability. Always 200; `dbOk` carries the result.
    """
    body = {"ok": True, "backend": store.backend, "dbConfigured": store.configured}
    try:
        await store.ping()
    except StoreError as exc:
        logger.warning("Store health check failed: %s", exc)
        return {**body, "dbOk": False, "error": str(exc) or "DB check failed"}
    return {**body, "dbOk": True}
