from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from fleetdesk.config import settings
from fleetdesk.exceptions import FleetDeskError

cli = typer.Typer(help="FleetDesk CLI (shipment imports)")


def _build_service():
    from fleetdesk.api.deps import get_import_service

    return get_import_service()


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _check_mode(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if value not in ("merge", "replace"):
        raise typer.BadParameter("mode must be 'merge' or 'replace'")
    return value


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"FleetDesk {settings.app.version}")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the FleetDesk API server."""
    uvicorn.run(
        "fleetdesk.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


@cli.command("import-file")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Pasted text/TSV file or .xlsx workbook"),
    import_date: str = typer.Option(..., "--date", help="Target date (YYYY-MM-DD)"),
    mode: Optional[str] = typer.Option(None, help="merge (default) or replace"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse and dedup only, write nothing"),
) -> None:
    """Import a shipment file for one date."""
    target = _parse_date(import_date)
    mode = _check_mode(mode)
    svc = _build_service()
    try:
        if path.suffix.lower() in (".xlsx", ".xlsm"):
            if dry_run:
                report = svc.preview_workbook(path, target, mode=mode)
            else:
                report = svc.import_workbook(path, target, mode=mode)
        else:
            text = path.read_text(encoding="utf-8-sig")
            report = svc.preview(text, target, mode=mode) if dry_run else svc.import_text(text, target, mode=mode)
    except FleetDeskError as exc:
        typer.echo(f"Import failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(report.model_dump(mode="json", exclude={"records"}), ensure_ascii=False))


@cli.command()
def show(import_date: str = typer.Argument(..., help="Date (YYYY-MM-DD)")) -> None:
    """Print the shipments stored for a date."""
    target = _parse_date(import_date)
    svc = _build_service()
    try:
        records = svc.records_for_date(target)
    except FleetDeskError as exc:
        typer.echo(f"Lookup failed: {exc}", err=True)
        raise typer.Exit(code=1)
    for record in records:
        typer.echo(f"{record.transport_reference}\t{record.route}\t{record.weight:.2f}\t{record.box_count}")
    typer.echo(f"{len(records)} shipment(s) on {target.isoformat()}")


if __name__ == "__main__":
    cli()
