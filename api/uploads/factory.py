"""
Build the configured upload store.
"""

from __future__ import annotations

from core.settings import Settings

from .fs_store import FilesystemUploadStore
from .memory_store import MemoryUploadStore
from .postgres_store import PostgresUploadStore
from .store import UploadStore


def create_store(settings: Settings) -> UploadStore:
    if settings.store_backend == "filesystem":
        return FilesystemUploadStore(settings.data_dir)
    if settings.store_backend == "memory":
        return MemoryUploadStore()
    return PostgresUploadStore(
        settings.database_url,
        use_ssl=settings.pg_ssl,
        init_policy=settings.init_policy,
        query_policy=settings.query_policy,
    )
