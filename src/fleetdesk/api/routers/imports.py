import logging
from datetime import date
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from fleetdesk.api.deps import get_import_service, require_import_key
from fleetdesk.config import settings
from fleetdesk.imports import (
    ImportRecord,
    RecordsImportRequest,
    ShipmentImportService,
    TextImportRequest,
)

logger = logging.getLogger("fleetdesk.api.imports")
router = APIRouter(prefix="/imports", tags=["Imports"])


def _save_temp_file(upload: UploadFile) -> Path:
    max_bytes = settings.security.max_upload_mb * 1024 * 1024
    suffix = Path(upload.filename or "").suffix or ".xlsx"
    prefix_raw = Path(upload.filename or "upload").stem or "upload"
    safe_prefix = prefix_raw.replace("/", "_").replace("\\", "_") + "_"
    content = upload.file.read()
    if max_bytes and len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large; max {settings.security.max_upload_mb}MB",
        )
    try:
        with NamedTemporaryFile(delete=False, suffix=suffix, prefix=safe_prefix) as tmp:
            tmp.write(content)
            return Path(tmp.name)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save uploaded file: {e}")


@router.post("/preview")
def preview_import(
    body: TextImportRequest,
    svc: ShipmentImportService = Depends(get_import_service),
):
    report = svc.preview(body.text, body.date, mode=body.mode)
    payload = report.model_dump(mode="json")
    payload["records"] = payload["records"][: settings.imports.preview_rows]
    payload["more_records"] = max(report.accepted - settings.imports.preview_rows, 0)
    return payload


@router.post("/text")
def import_text(
    body: TextImportRequest,
    svc: ShipmentImportService = Depends(get_import_service),
    _key=Depends(require_import_key),
):
    report = svc.import_text(body.text, body.date, mode=body.mode)
    return report.model_dump(mode="json")


@router.post("/records")
def import_records(
    body: RecordsImportRequest,
    svc: ShipmentImportService = Depends(get_import_service),
    _key=Depends(require_import_key),
):
    records = [ImportRecord(**item.model_dump(), date=body.date) for item in body.records]
    report = svc.import_records(records, body.date, mode=body.mode)
    return report.model_dump(mode="json")


@router.post("/workbook")
def import_workbook(
    import_date: date = Query(..., alias="date"),
    mode: Optional[Literal["merge", "replace"]] = Query(None),
    file: UploadFile = File(...),
    svc: ShipmentImportService = Depends(get_import_service),
    _key=Depends(require_import_key),
):
    path = _save_temp_file(file)
    try:
        report = svc.import_workbook(path, import_date, mode=mode)
    finally:
        path.unlink(missing_ok=True)
    return report.model_dump(mode="json")


@router.get("/{import_date}")
def list_imports(
    import_date: date,
    svc: ShipmentImportService = Depends(get_import_service),
):
    records = svc.records_for_date(import_date)
    return {
        "date": import_date.isoformat(),
        "count": len(records),
        "records": [r.model_dump(mode="json") for r in records],
    }
