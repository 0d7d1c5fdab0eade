"""
Store error taxonomy.

Stores classify failures into these types; the HTTP layer only maps them to
status codes (see `api/main.py`).
"""

from __future__ import annotations


class StoreError(RuntimeError):
    """Fatal store failure (bad input, constraint violation, I/O error...)."""


class StoreUnconfiguredError(StoreError):
    """No backend target is configured. Permanent; never retried."""


class StoreUnavailableError(StoreError):
    """The backend is still starting up and the retry budget ran out."""


class StalePointerError(LookupError):
    """The latest-upload pointer names a blob that no longer exists."""

    def __init__(self, blob_name: str) -> None:
        super().__init__(f"Latest upload '{blob_name}' is missing from storage.")
        self.blob_name = blob_name
