"""
Auth dependencies for protected FastAPI routes.

Uploads are protected by one static bearer token (`UPLOAD_TOKEN`). When no
token is configured the check is disabled.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from core.dependencies import get_settings
from core.settings import Settings

from . import security


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header.",
        )

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def require_upload_token(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.upload_token:
        return None

    token = _extract_bearer_token(authorization)
    if not security.token_matches(token, settings.upload_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return None
