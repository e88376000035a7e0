from __future__ import annotations

import logging
from datetime import date as Date
from pathlib import Path
from typing import Callable, Iterable, Optional

from fleetdesk.config import settings
from fleetdesk.exceptions import CommitError, StorageError
from fleetdesk.imports.cache import DateRecordCache
from fleetdesk.imports.dedup import DuplicateFilter
from fleetdesk.imports.models import ImportMode, ImportRecord, ImportReport, ParseResult, StoredImportRecord
from fleetdesk.imports.parser import ShipmentTextParser
from fleetdesk.imports.store import ImportStore
from fleetdesk.imports.workbook import ShipmentWorkbookAdapter

logger = logging.getLogger(__name__)


class ShipmentImportService:
    """
    Orchestrates paste -> parse -> dedup -> replace-by-date commit.

    The commit is a plain delete-then-insert sequence against the store: it is not atomic,
    and two imports racing on the same date can interleave.
    """

    def __init__(
        self,
        store: ImportStore,
        parser: Optional[ShipmentTextParser] = None,
        dedup: Optional[DuplicateFilter] = None,
        cache: Optional[DateRecordCache] = None,
        default_mode: Optional[ImportMode] = None,
    ):
        self.store = store
        self.parser = parser or ShipmentTextParser(
            delimiter=settings.imports.delimiter,
            min_columns=settings.imports.min_columns,
        )
        self.dedup = dedup or DuplicateFilter(match_content=settings.imports.match_content)
        self.cache = cache or DateRecordCache(store)
        self.default_mode: ImportMode = default_mode or self._coerce_mode(settings.imports.default_mode)

    def parse(self, text: str, target_date: Date) -> ParseResult:
        return self.parser.parse(text, target_date)

    def preview(self, text: str, target_date: Date, mode: Optional[ImportMode] = None) -> ImportReport:
        """Parse and dedup without writing anything."""
        parsed = self.parser.parse(text, target_date)
        report, _ = self._plan(parsed.records, target_date, mode or self.default_mode)
        report.layout = parsed.layout
        report.skipped = parsed.skipped
        return report

    def preview_workbook(self, file_path: Path, target_date: Date, mode: Optional[ImportMode] = None) -> ImportReport:
        parsed = ShipmentWorkbookAdapter.load(file_path, target_date)
        report, _ = self._plan(parsed.records, target_date, mode or self.default_mode)
        report.layout = parsed.layout
        report.skipped = parsed.skipped
        return report

    def import_text(self, text: str, target_date: Date, mode: Optional[ImportMode] = None) -> ImportReport:
        parsed = self.parser.parse(text, target_date)
        report = self.import_records(parsed.records, target_date, mode=mode)
        report.layout = parsed.layout
        report.skipped = parsed.skipped
        return report

    def import_workbook(self, file_path: Path, target_date: Date, mode: Optional[ImportMode] = None) -> ImportReport:
        parsed = ShipmentWorkbookAdapter.load(file_path, target_date)
        report = self.import_records(parsed.records, target_date, mode=mode)
        report.layout = parsed.layout
        report.skipped = parsed.skipped
        return report

    def import_records(
        self,
        records: Iterable[ImportRecord],
        target_date: Date,
        mode: Optional[ImportMode] = None,
    ) -> ImportReport:
        """
        Import pre-structured records for ``target_date``.
        merge: keep what is on file and add the new shipments.
        replace: the date ends up holding exactly the (self-deduplicated) batch.
        """
        mode = mode or self.default_mode
        candidates = [record.stamped(target_date) for record in records]
        report, final_set = self._plan(candidates, target_date, mode)

        if mode == "merge" and not report.accepted:
            logger.info(
                "nothing new to import",
                extra={"date": target_date.isoformat(), "duplicates": report.duplicates},
            )
            report.records = [r.to_record() for r in self._load(self.cache.refresh, target_date)]
            return report

        stored = self.commit(target_date, final_set)
        report.committed = True
        report.records = [r.to_record() for r in stored]
        logger.info(
            "import committed",
            extra={
                "date": target_date.isoformat(),
                "mode": mode,
                "accepted": report.accepted,
                "duplicates": report.duplicates,
                "stored": len(stored),
            },
        )
        return report

    def _plan(
        self, candidates: list[ImportRecord], target_date: Date, mode: ImportMode
    ) -> tuple[ImportReport, list[ImportRecord]]:
        if mode == "merge":
            existing = [r.to_record() for r in self._load(self.store.list_by_date, target_date)]
        else:
            existing = []
        result = self.dedup.filter(candidates, existing)
        report = ImportReport(
            date=target_date,
            mode=mode,
            candidates=len(candidates),
            accepted=len(result.accepted),
            duplicates=result.duplicate_count,
            duplicate_references=[r.transport_reference for r in result.duplicates],
            records=result.accepted,
        )
        return report, existing + result.accepted

    def commit(self, target_date: Date, records: Iterable[ImportRecord]) -> list[StoredImportRecord]:
        """
        Replace everything stored for ``target_date`` with ``records``.
        Any store failure stops the sequence and is raised as CommitError.
        """
        pending = [record.stamped(target_date) for record in records]
        step = "list"
        deleted = 0
        inserted = 0
        try:
            existing = self.store.list_by_date(target_date)
            step = "delete"
            for record in existing:
                self.store.delete_by_id(record.id)
                deleted += 1
            step = "insert"
            for record in pending:
                self.store.insert(record)
                inserted += 1
            step = "refresh"
            stored = self.store.list_by_date(target_date)
        except Exception as exc:
            self.cache.invalidate(target_date)
            logger.exception(
                "import commit failed",
                extra={"date": target_date.isoformat(), "step": step, "deleted": deleted, "inserted": inserted},
            )
            raise CommitError(
                f"Commit for {target_date.isoformat()} failed during {step}: {exc}",
                date=target_date.isoformat(),
                step=step,
                deleted=deleted,
                inserted=inserted,
            ) from exc

        self.cache.put(target_date, stored)
        return stored

    def records_for_date(self, target_date: Date) -> list[StoredImportRecord]:
        return self._load(self.cache.get, target_date)

    @staticmethod
    def _load(
        fetch: Callable[[Date], list[StoredImportRecord]], target_date: Date
    ) -> list[StoredImportRecord]:
        """Read stored imports for a date; store faults surface as StorageError."""
        try:
            return fetch(target_date)
        except Exception as exc:
            logger.exception("failed to load stored imports", extra={"date": target_date.isoformat()})
            raise StorageError(f"Could not load imports for {target_date.isoformat()}: {exc}") from exc

    @staticmethod
    def _coerce_mode(value: Optional[str]) -> ImportMode:
        return "replace" if str(value or "").strip().lower() == "replace" else "merge"
