from __future__ import annotations

from datetime import UTC, date as Date, datetime
from typing import Any, Optional

from fleetdesk.exceptions import StorageError
from fleetdesk.imports.models import ImportRecord, StoredImportRecord
from fleetdesk.imports.parser import parse_box_count, parse_weight


class FirestoreImportStore:
    """
    Firestore-backed import store.
    Documents keep the dashboard's field names (transportSAP, routes, weight, boxes, date)
    so existing collections stay readable by both sides.
    """

    def __init__(
        self,
        *,
        project_id: Optional[str] = None,
        database: str = "(default)",
        collection: str = "importedData",
        client: Any = None,
    ):
        self._collection_name = str(collection).strip() or "importedData"
        if client is not None:
            self._client = client
            return

        try:
            from google.cloud import firestore
        except Exception as exc:  # pragma: no cover - depends on optional runtime deps
            raise StorageError(
                "Firestore backend requested but google-cloud-firestore is not installed"
            ) from exc

        client_kwargs: dict[str, Any] = {}
        if project_id:
            client_kwargs["project"] = project_id
        if database and database != "(default)":
            client_kwargs["database"] = database

        try:
            self._client = firestore.Client(**client_kwargs)
        except TypeError:
            client_kwargs.pop("database", None)
            self._client = firestore.Client(**client_kwargs)

    def _collection(self):
        return self._client.collection(self._collection_name)

    def list_by_date(self, target_date: Date) -> list[StoredImportRecord]:
        query = self._collection().where(field_path="date", op_string="==", value=target_date.isoformat())
        rows: list[tuple[str, StoredImportRecord]] = []
        for doc in query.stream():
            data = doc.to_dict() or {}
            rows.append((self._as_iso(data.get("createdAt")) or "", self._from_document(doc.id, data, target_date)))
        rows.sort(key=lambda item: item[0])
        return [record for _, record in rows]

    def delete_by_id(self, record_id: str) -> None:
        self._collection().document(record_id).delete()

    def insert(self, record: ImportRecord) -> str:
        now = datetime.now(UTC)
        _, doc_ref = self._collection().add(
            {
                "transportSAP": record.transport_reference,
                "routes": record.route,
                "weight": record.weight,
                "boxes": record.box_count,
                "date": record.date.isoformat(),
                "createdAt": now,
                "updatedAt": now,
            }
        )
        return doc_ref.id

    @staticmethod
    def _from_document(doc_id: str, data: dict[str, Any], fallback_date: Date) -> StoredImportRecord:
        raw_date = data.get("date")
        try:
            record_date = Date.fromisoformat(str(raw_date)) if raw_date else fallback_date
        except ValueError:
            record_date = fallback_date
        return StoredImportRecord(
            id=doc_id,
            transport_reference=data.get("transportSAP") or "",
            route=data.get("routes") or "",
            weight=parse_weight(data.get("weight")),
            box_count=parse_box_count(data.get("boxes")),
            date=record_date,
        )

    @staticmethod
    def _as_iso(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, datetime):
            dt = value if value.tzinfo else value.replace(tzinfo=UTC)
            return dt.isoformat()
        return str(value)
