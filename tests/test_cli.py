from typer.testing import CliRunner

import fleetdesk.api.deps as deps
from fleetdesk.config import settings
from fleetdesk.main import cli

from conftest import PASTED_SHEET

runner = CliRunner()


def test_import_file_and_show(tmp_path, monkeypatch):
    monkeypatch.setattr(settings.storage, "backend", "sqlite")
    monkeypatch.setattr(settings.paths, "db_path", tmp_path / "cli.db")
    deps.reset_instances()
    paste = tmp_path / "colagem.tsv"
    paste.write_text(PASTED_SHEET, encoding="utf-8")

    dry = runner.invoke(cli, ["import-file", str(paste), "--date", "2026-10-19", "--dry-run"])
    assert dry.exit_code == 0, dry.output
    assert '"committed": false' in dry.output

    result = runner.invoke(cli, ["import-file", str(paste), "--date", "2026-10-19"])
    assert result.exit_code == 0, result.output
    assert '"accepted": 3' in result.output

    shown = runner.invoke(cli, ["show", "2026-10-19"])
    assert shown.exit_code == 0
    assert "52736285\tRAH8604-SC / BOA MESA\t4965.30\t1295" in shown.output
    assert "3 shipment(s) on 2026-10-19" in shown.output
    deps.reset_instances()


def test_import_file_rejects_bad_date(tmp_path):
    paste = tmp_path / "colagem.tsv"
    paste.write_text(PASTED_SHEET, encoding="utf-8")

    result = runner.invoke(cli, ["import-file", str(paste), "--date", "19/10/2026"])
    assert result.exit_code != 0
