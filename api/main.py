from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import StalePointerError, StoreError, StoreUnavailableError
from core.log import configure_logging
from core.settings import Settings, load_settings
from health.router import router as health_router
from uploads.factory import create_store
from uploads.router import router as uploads_router

SERVICE_NAME = "latest-upload-service"

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    # Stores hand over already-classified errors; here they only become status codes.

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable(_: Request, exc: StoreUnavailableError) -> JSONResponse:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc) or "Database is starting up")

    @app.exception_handler(StoreError)
    async def store_failed(_: Request, exc: StoreError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Store operation failed")

    @app.exception_handler(StalePointerError)
    async def stale_pointer(_: Request, exc: StalePointerError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # The store initializes lazily on first use; only shutdown needs handling.
        logger.info("Starting %s with %s store", SERVICE_NAME, app.state.upload_store.backend)
        try:
            yield
        finally:
            await app.state.upload_store.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.upload_store = create_store(settings)

    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(uploads_router, tags=["uploads"])

    @app.get("/")
    def root() -> dict:
        return {
            "name": SERVICE_NAME,
            "status": "ok",
            "endpoints": {
                "health": "GET /health",
                "healthDb": "GET /health/db",
                "upload": "POST /upload (multipart/form-data, field: file)",
                "latest": "GET /latest (or /files/latest)",
                "uploadsCount": "GET /uploads/count",
                "uploadsLatestMeta": "GET /uploads/latest/meta",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
