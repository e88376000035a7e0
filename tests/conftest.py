from datetime import date

import pytest

from fleetdesk.imports import ShipmentImportService, SqliteImportStore

IMPORT_DATE = date(2026, 10, 19)

PASTED_SHEET = (
    "Transporte SAP\tROTAS\tPESO\tCaixas\n"
    "52736285\tRAH8604-SC / BOA MESA\t4.965,30\t1.295\n"
    "52736286\tQJK1234 / CHAPECO\t12.000,00\t2.400\n"
    "52736287\tMKT0001 / LAGES\t850,5\t75\n"
)


@pytest.fixture
def store(tmp_path):
    return SqliteImportStore(db_path=tmp_path / "fleetdesk.db")


@pytest.fixture
def service(store):
    return ShipmentImportService(store=store, default_mode="merge")
