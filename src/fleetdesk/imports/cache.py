from __future__ import annotations

from datetime import date as Date
from threading import Lock

from fleetdesk.imports.models import StoredImportRecord
from fleetdesk.imports.store import ImportStore


class DateRecordCache:
    """
    Read-through cache of stored imports keyed by date.
    Entries are only replaced with freshly fetched data or dropped; never patched in place.
    """

    def __init__(self, store: ImportStore):
        self.store = store
        self._entries: dict[Date, list[StoredImportRecord]] = {}
        self._lock = Lock()

    def get(self, target_date: Date) -> list[StoredImportRecord]:
        with self._lock:
            cached = self._entries.get(target_date)
        if cached is not None:
            return list(cached)
        return self.refresh(target_date)

    def refresh(self, target_date: Date) -> list[StoredImportRecord]:
        records = self.store.list_by_date(target_date)
        self.put(target_date, records)
        return list(records)

    def put(self, target_date: Date, records: list[StoredImportRecord]) -> None:
        with self._lock:
            self._entries[target_date] = list(records)

    def invalidate(self, target_date: Date | None = None) -> None:
        with self._lock:
            if target_date is None:
                self._entries.clear()
            else:
                self._entries.pop(target_date, None)

    def __contains__(self, target_date: Date) -> bool:
        with self._lock:
            return target_date in self._entries
