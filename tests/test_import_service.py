from datetime import date

import pytest

from fleetdesk.exceptions import CommitError, StorageError
from fleetdesk.imports import ImportRecord, ShipmentImportService

from conftest import IMPORT_DATE, PASTED_SHEET


class CountingStore:
    """Wraps a real store and counts/optionally breaks calls."""

    def __init__(self, inner, fail_on: str | None = None, fail_after: int = 0):
        self.inner = inner
        self.fail_on = fail_on
        self.fail_after = fail_after
        self.calls = {"list_by_date": 0, "delete_by_id": 0, "insert": 0}

    def _tick(self, name: str) -> None:
        self.calls[name] += 1
        if self.fail_on == name and self.calls[name] > self.fail_after:
            raise ConnectionError(f"{name} unavailable")

    def list_by_date(self, target_date):
        self._tick("list_by_date")
        return self.inner.list_by_date(target_date)

    def delete_by_id(self, record_id):
        self._tick("delete_by_id")
        return self.inner.delete_by_id(record_id)

    def insert(self, record):
        self._tick("insert")
        return self.inner.insert(record)


def _record(ref: str, route: str = "ROTA", on: date = IMPORT_DATE) -> ImportRecord:
    return ImportRecord(transport_reference=ref, route=route, weight=10.0, box_count=1, date=on)


def _snapshot(store, on: date = IMPORT_DATE):
    return sorted(r.to_record().model_dump_json() for r in store.list_by_date(on))


def test_reimport_of_identical_text_is_idempotent(service, store):
    first = service.import_text(PASTED_SHEET, IMPORT_DATE)
    assert first.committed is True
    assert first.accepted == 3
    after_first = _snapshot(store)

    second = service.import_text(PASTED_SHEET, IMPORT_DATE)
    assert second.accepted == 0
    assert second.duplicates == second.candidates == 3
    assert second.committed is False
    assert _snapshot(store) == after_first
    assert len(second.records) == 3


def test_commit_replaces_everything_for_the_date(service, store):
    for ref in ("1", "2", "3"):
        store.insert(_record(ref))
    store.insert(_record("9", on=date(2026, 10, 20)))

    stored = service.commit(IMPORT_DATE, [_record("4"), _record("5")])

    assert sorted(r.transport_reference for r in stored) == ["4", "5"]
    assert sorted(r.transport_reference for r in store.list_by_date(IMPORT_DATE)) == ["4", "5"]
    assert [r.transport_reference for r in store.list_by_date(date(2026, 10, 20))] == ["9"]


def test_merge_adds_only_new_shipments(service, store):
    service.import_text(PASTED_SHEET, IMPORT_DATE)
    text = "SAP\tROTA\tPESO\tCAIXAS\n52736287\tMKT0001 / LAGES\t1,0\t1\n52736288\tNOVA / JOACABA\t300,00\t20\n"

    report = service.import_text(text, IMPORT_DATE)

    assert report.accepted == 1
    assert report.duplicate_references == ["52736287"]
    refs = sorted(r.transport_reference for r in store.list_by_date(IMPORT_DATE))
    assert refs == ["52736285", "52736286", "52736287", "52736288"]
    # the stored copy of a duplicated reference is not overwritten
    lages = [r for r in store.list_by_date(IMPORT_DATE) if r.transport_reference == "52736287"][0]
    assert lages.weight == pytest.approx(850.5)


def test_replace_mode_discards_previous_day(service, store):
    service.import_text(PASTED_SHEET, IMPORT_DATE)
    text = "SAP\tROTA\tPESO\tCAIXAS\n52736285\tRAH8604-SC\t1,0\t1\n52736299\tOUTRA\t2,0\t2\n52736299\tOUTRA\t2,0\t2\n"

    report = service.import_text(text, IMPORT_DATE, mode="replace")

    assert report.accepted == 2
    assert report.duplicates == 1
    assert sorted(r.transport_reference for r in store.list_by_date(IMPORT_DATE)) == ["52736285", "52736299"]


def test_preview_does_not_write(service, store):
    report = service.preview(PASTED_SHEET, IMPORT_DATE)

    assert report.layout == "tabular"
    assert report.accepted == 3
    assert report.committed is False
    assert store.list_by_date(IMPORT_DATE) == []


def test_import_records_restamps_date(service, store):
    report = service.import_records([_record("1", on=date(2020, 1, 1))], IMPORT_DATE)

    assert report.committed is True
    assert [r.date for r in store.list_by_date(IMPORT_DATE)] == [IMPORT_DATE]
    assert store.list_by_date(date(2020, 1, 1)) == []


def test_commit_failure_aborts_remaining_steps(store):
    for ref in ("1", "2"):
        store.insert(_record(ref))
    flaky = CountingStore(store, fail_on="insert", fail_after=1)
    svc = ShipmentImportService(store=flaky)
    svc.records_for_date(IMPORT_DATE)

    with pytest.raises(CommitError) as excinfo:
        svc.commit(IMPORT_DATE, [_record("3"), _record("4"), _record("5")])

    err = excinfo.value
    assert err.step == "insert"
    assert err.deleted == 2
    assert err.inserted == 1
    assert isinstance(err.__cause__, ConnectionError)
    # no further inserts were attempted after the failure
    assert flaky.calls["insert"] == 2
    assert IMPORT_DATE not in svc.cache


def test_failure_loading_existing_records_is_a_storage_error(store):
    broken = CountingStore(store, fail_on="list_by_date")
    svc = ShipmentImportService(store=broken)

    with pytest.raises(StorageError):
        svc.import_text(PASTED_SHEET, IMPORT_DATE)
    assert broken.calls["insert"] == 0


def test_cache_is_refreshed_after_commit(store):
    counting = CountingStore(store)
    svc = ShipmentImportService(store=counting, default_mode="merge")
    svc.import_text(PASTED_SHEET, IMPORT_DATE)
    calls_after_import = counting.calls["list_by_date"]

    records = svc.records_for_date(IMPORT_DATE)

    assert len(records) == 3
    assert counting.calls["list_by_date"] == calls_after_import

    svc.cache.invalidate(IMPORT_DATE)
    svc.records_for_date(IMPORT_DATE)
    assert counting.calls["list_by_date"] == calls_after_import + 1


def test_reading_a_date_wraps_store_faults(store):
    broken = CountingStore(store, fail_on="list_by_date")
    svc = ShipmentImportService(store=broken)

    with pytest.raises(StorageError) as excinfo:
        svc.records_for_date(IMPORT_DATE)

    assert not isinstance(excinfo.value, CommitError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert IMPORT_DATE not in svc.cache


def test_merge_without_new_shipments_reports_refresh_failure(store):
    flaky = CountingStore(store, fail_on="list_by_date", fail_after=1)
    svc = ShipmentImportService(store=flaky, default_mode="merge")

    # first list_by_date (dedup against stored) succeeds, the refresh after a no-op merge fails
    with pytest.raises(StorageError):
        svc.import_text("", IMPORT_DATE)
    assert flaky.calls["insert"] == 0
