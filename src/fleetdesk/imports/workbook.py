import logging
import zipfile
from datetime import date as Date
from pathlib import Path
from typing import Any, List

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from fleetdesk.exceptions import DataSourceError
from fleetdesk.imports.models import ImportRecord, ParseResult, SkippedLine
from fleetdesk.imports.parser import parse_box_count, parse_weight

logger = logging.getLogger(__name__)


class ShipmentWorkbookAdapter:
    """
    Reads the shipment sheet (Transporte SAP | ROTAS | PESO | Caixas) straight from an .xlsx export.
    The first row is headers; numeric cells are taken as-is, text cells go through the locale normalization.
    """

    MIN_COLUMNS = 4

    @classmethod
    def load(cls, file_path: Path, target_date: Date) -> ParseResult:
        try:
            wb = load_workbook(file_path, data_only=True, read_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
            raise DataSourceError(f"Could not read workbook {Path(file_path).name}: {exc}") from exc

        try:
            ws = wb.active
            rows = list(ws.iter_rows(values_only=True))
        finally:
            wb.close()

        result = ParseResult(layout="tabular")
        if not rows:
            result.layout = "empty"
            return result

        for idx, row in enumerate(rows[1:], start=2):
            cells: List[Any] = list(row)
            text = "\t".join(cls._safe_str(c) for c in cells)
            if all(cls._safe_str(c) == "" for c in cells):
                result.skipped.append(SkippedLine(line_number=idx, text=text, reason="blank"))
                continue
            if len(cells) < cls.MIN_COLUMNS:
                result.skipped.append(SkippedLine(line_number=idx, text=text, reason="too_few_columns"))
                continue
            reference = cls._reference(cells[0])
            if not reference:
                result.skipped.append(SkippedLine(line_number=idx, text=text, reason="missing_reference"))
                continue
            result.records.append(
                ImportRecord(
                    transport_reference=reference,
                    route=cls._safe_str(cells[1]),
                    weight=parse_weight(cells[2]),
                    box_count=parse_box_count(cells[3]),
                    date=target_date,
                )
            )

        logger.info(
            "parsed shipment workbook",
            extra={"source_file": str(file_path), "records": len(result.records), "skipped": len(result.skipped)},
        )
        return result

    @staticmethod
    def _reference(value: Any) -> str:
        # Excel stores SAP codes as numbers: 52736285.0 -> "52736285"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return ShipmentWorkbookAdapter._safe_str(value)

    @staticmethod
    def _safe_str(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()
