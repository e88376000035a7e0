from __future__ import annotations

import sqlite3
from datetime import UTC, date as Date, datetime
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from fleetdesk.imports.models import ImportRecord, StoredImportRecord


class ImportStore(Protocol):
    """Storage contract used by the import pipeline. Every call may raise on backend faults."""

    def list_by_date(self, target_date: Date) -> list[StoredImportRecord]:
        ...

    def delete_by_id(self, record_id: str) -> None:
        ...

    def insert(self, record: ImportRecord) -> str:
        ...


class SqliteImportStore:
    """
    Persistence for imported shipments in local/dev.
    Backed by SQLite; the Firestore adapter implements the same interface.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self):
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS imported_shipments (
                    id TEXT PRIMARY KEY,
                    transport_reference TEXT NOT NULL,
                    route TEXT NOT NULL,
                    weight REAL NOT NULL,
                    box_count INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_shipments_date ON imported_shipments (date);"
            )
            conn.commit()

    def list_by_date(self, target_date: Date) -> list[StoredImportRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, transport_reference, route, weight, box_count, date
                FROM imported_shipments WHERE date = ?
                ORDER BY created_at, rowid
                """,
                (target_date.isoformat(),),
            ).fetchall()
        return [
            StoredImportRecord(
                id=row[0],
                transport_reference=row[1],
                route=row[2],
                weight=row[3],
                box_count=row[4],
                date=Date.fromisoformat(row[5]),
            )
            for row in rows
        ]

    def delete_by_id(self, record_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM imported_shipments WHERE id = ?", (record_id,))
            conn.commit()

    def insert(self, record: ImportRecord) -> str:
        record_id = uuid4().hex
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO imported_shipments
                    (id, transport_reference, route, weight, box_count, date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record_id,
                    record.transport_reference,
                    record.route,
                    record.weight,
                    record.box_count,
                    record.date.isoformat(),
                    datetime.now(UTC).isoformat(),
                ),
            )
            conn.commit()
        return record_id
