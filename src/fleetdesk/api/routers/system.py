from fastapi import APIRouter

from fleetdesk.config import settings

router = APIRouter(tags=["System"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": settings.app.version,
        "storage_backend": settings.storage.backend,
    }
