import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fleetdesk.config import settings
from fleetdesk.exceptions import CommitError, DataSourceError, StorageError
from fleetdesk.api.middleware import request_context

# Routers
from fleetdesk.api.routers import imports, system

# Configure logging
logging.basicConfig(level=getattr(logging, settings.logging.level.upper(), logging.INFO))
logger = logging.getLogger("fleetdesk.api")


def _error_payload(request: Request, error: str, detail, **extra) -> dict:
    payload = {"error": error, "detail": detail, **extra}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return payload


def create_app(db_path: Optional[Path] = None) -> FastAPI:
    """
    Factory to build the FastAPI application.
    db_path overrides the SQLite location (tests point it at tmp_path).
    """
    import fleetdesk.api.deps as deps

    if db_path:
        settings.paths.db_path = db_path
    # Drop cached store/service so the new settings take effect.
    deps.reset_instances()

    app = FastAPI(title="FleetDesk API", version=settings.app.version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(request_context)

    app.include_router(system.router)
    app.include_router(imports.router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, StarletteHTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

        rid = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", extra={"path": str(request.url), "request_id": rid})
        return JSONResponse(status_code=500, content=_error_payload(request, "internal_error", "Unexpected server error"))

    @app.exception_handler(DataSourceError)
    async def datasource_exception_handler(request: Request, exc: DataSourceError):
        return JSONResponse(status_code=422, content=_error_payload(request, "invalid_source", str(exc)))

    @app.exception_handler(CommitError)
    async def commit_exception_handler(request: Request, exc: CommitError):
        return JSONResponse(
            status_code=503,
            content=_error_payload(request, "storage_unavailable", str(exc), commit=exc.to_dict()),
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        return JSONResponse(status_code=503, content=_error_payload(request, "storage_unavailable", str(exc)))

    return app

# Module-level app for uvicorn entrypoint
app = create_app()
