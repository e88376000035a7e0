from __future__ import annotations

import secrets
from typing import Any, Optional

from fastapi import Header, HTTPException

from fleetdesk.config import settings
from fleetdesk.imports import ShipmentImportService, SqliteImportStore

# Global/Cached instances
_store_instance: Optional[Any] = None
_store_backend: Optional[str] = None
_import_service_instance: Optional[ShipmentImportService] = None


def reset_instances() -> None:
    global _store_instance, _store_backend, _import_service_instance
    _store_instance = None
    _store_backend = None
    _import_service_instance = None


def get_store():
    global _store_instance, _store_backend, _import_service_instance
    backend = (settings.storage.backend or "sqlite").strip().lower()
    if _store_instance is None or _store_backend != backend:
        if backend == "firestore":
            from fleetdesk.imports.store_firestore import FirestoreImportStore

            _store_instance = FirestoreImportStore(
                project_id=settings.storage.firestore_project_id,
                database=settings.storage.firestore_database,
                collection=settings.storage.firestore_collection,
            )
        else:
            _store_instance = SqliteImportStore(db_path=settings.paths.db_path)
        _store_backend = backend
        # Service cache belongs to the previous store.
        _import_service_instance = None
    return _store_instance


def get_import_service() -> ShipmentImportService:
    global _import_service_instance
    store = get_store()
    if _import_service_instance is None:
        _import_service_instance = ShipmentImportService(store=store)
    return _import_service_instance


def require_import_key(x_import_key: Optional[str] = Header(None, alias="X-Import-Key")):
    """Write routes need the shared import key when one is configured."""
    expected = settings.security.import_token
    if expected and not (x_import_key and secrets.compare_digest(x_import_key, expected)):
        raise HTTPException(status_code=401, detail="Missing or invalid X-Import-Key")
