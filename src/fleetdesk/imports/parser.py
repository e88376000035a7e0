from __future__ import annotations

import logging
import math
import re
from datetime import date as Date
from typing import Any, Optional

from fleetdesk.imports.models import ImportRecord, ParseResult, SkippedLine

logger = logging.getLogger(__name__)

RECORD_START_RE = re.compile(r"^\s*(\d+)")
WEIGHT_TOKEN = r"\d[\d.]*(?:,\d+)?"
BOXES_TOKEN = r"\d[\d.]*"
SINGLE_LINE_RE = re.compile(
    rf"^\s*(?P<ref>\d+)[\s\-|;]+(?P<route>.*?[^\W\d_].*?)\s+(?P<weight>{WEIGHT_TOKEN})\s*(?:kg)?\s+(?P<boxes>{BOXES_TOKEN})\s*$",
    re.IGNORECASE,
)
WEIGHT_LINE_RE = re.compile(rf"^\s*(?:(?:peso|weight)\s*:?\s*)?(?P<value>{WEIGHT_TOKEN})\s*(?:kg)?\s*$", re.IGNORECASE)
BOXES_LINE_RE = re.compile(rf"^\s*(?:(?:caixas|boxes|cx)\s*:?\s*)?(?P<value>{BOXES_TOKEN})\s*$", re.IGNORECASE)
HAS_LETTER_RE = re.compile(r"[^\W\d_]")
DECORATED_LABEL_RE = re.compile(r"^\s*[*=#~_\-]{2,}")

HEADER_WORDS = (
    ("ROTAS", "ROTA", "ROUTES", "ROUTE"),
    ("PESO", "WEIGHT"),
    ("CAIXAS", "BOXES"),
    ("TRANSPORTE", "TRANSPORT"),
)


def parse_weight(text: Any) -> float:
    """
    Locale weight text -> kilograms. "4.965,30" -> 4965.3.
    Thousands points are dropped, the decimal comma becomes a point.
    """
    if text is None:
        return 0.0
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        value = float(text)
    else:
        cleaned = re.sub(r"[^\d,]", "", str(text)).replace(",", ".", 1)
        try:
            value = float(cleaned)
        except ValueError:
            return 0.0
    # overlong digit runs overflow to inf
    if not math.isfinite(value):
        return 0.0
    return max(value, 0.0)


def parse_box_count(text: Any) -> int:
    if text is None:
        return 0
    if isinstance(text, int) and not isinstance(text, bool):
        return max(text, 0)
    if isinstance(text, float):
        return max(int(text), 0)
    cleaned = re.sub(r"\D", "", str(text))
    try:
        return int(cleaned)
    except ValueError:
        return 0


class ShipmentTextParser:
    """
    Parser for shipment data pasted from a spreadsheet or a plain text report.

    Two layouts are accepted:
    - tabular: header line + delimiter separated rows (reference, route, weight, boxes)
    - loose: one field per line, records start on a line beginning with the transport reference

    Parsing never raises; lines that cannot be used are reported in ``ParseResult.skipped``.
    """

    def __init__(self, delimiter: str = "\t", min_columns: int = 4):
        self.delimiter = delimiter
        self.min_columns = max(int(min_columns), 4)

    def parse(self, text: Optional[str], target_date: Date) -> ParseResult:
        lines = self._split_lines(text)
        if not lines:
            return ParseResult(layout="empty")

        if self._is_tabular(lines):
            result = self._parse_tabular(lines, target_date)
        else:
            result = self._parse_loose(lines, target_date)

        logger.info(
            "parsed shipment paste",
            extra={
                "layout": result.layout,
                "records": len(result.records),
                "skipped": len(result.skipped),
                "date": target_date.isoformat(),
            },
        )
        return result

    @staticmethod
    def _split_lines(text: Optional[str]) -> list[str]:
        if not text:
            return []
        stripped = str(text).strip()
        if not stripped:
            return []
        return re.split(r"\r\n|\r|\n", stripped)

    def _is_tabular(self, lines: list[str]) -> bool:
        first = next((line for line in lines if line.strip()), "")
        return len(first.split(self.delimiter)) >= self.min_columns

    # ----- tabular layout -----
    def _parse_tabular(self, lines: list[str], target_date: Date) -> ParseResult:
        result = ParseResult(layout="tabular")
        # Line 1 is the header row.
        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="blank"))
                continue
            cells = [cell.strip() for cell in line.split(self.delimiter)]
            if len(cells) < self.min_columns:
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="too_few_columns"))
                continue
            reference, route, weight_text, boxes_text = cells[:4]
            if not reference:
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="missing_reference"))
                continue
            result.records.append(
                ImportRecord(
                    transport_reference=reference,
                    route=route,
                    weight=parse_weight(weight_text),
                    box_count=parse_box_count(boxes_text),
                    date=target_date,
                )
            )
        return result

    # ----- loose layout -----
    def _parse_loose(self, lines: list[str], target_date: Date) -> ParseResult:
        result = ParseResult(layout="loose")
        idx = 0
        total = len(lines)
        while idx < total:
            line = lines[idx]
            line_number = idx + 1
            idx += 1

            if not line.strip():
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="blank"))
                continue
            if self.is_label_line(line):
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="label"))
                continue

            start = RECORD_START_RE.match(line)
            if not start:
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="unrecognized"))
                continue

            single = SINGLE_LINE_RE.match(line)
            if single:
                result.records.append(
                    ImportRecord(
                        transport_reference=single.group("ref"),
                        route=single.group("route"),
                        weight=parse_weight(single.group("weight")),
                        box_count=parse_box_count(single.group("boxes")),
                        date=target_date,
                    )
                )
                continue

            reference = start.group(1)
            route, weight, boxes, idx = self._read_following_fields(lines, idx, result)
            if not route:
                result.skipped.append(SkippedLine(line_number=line_number, text=line, reason="missing_route"))
                continue
            result.records.append(
                ImportRecord(
                    transport_reference=reference,
                    route=route,
                    weight=weight,
                    box_count=boxes,
                    date=target_date,
                )
            )
        return result

    def _read_following_fields(
        self, lines: list[str], idx: int, result: ParseResult
    ) -> tuple[str, float, int, int]:
        """
        Look at up to three lines after a reference line for route, weight and boxes, in that order.
        Matched lines are consumed; returns the new scan position.
        """
        route = ""
        weight = 0.0
        boxes = 0
        examined = 0
        field = "route"
        while idx < len(lines) and examined < 3 and field != "done":
            line = lines[idx]
            if not line.strip():
                result.skipped.append(SkippedLine(line_number=idx + 1, text=line, reason="blank"))
                idx += 1
                continue
            if self.is_label_line(line):
                result.skipped.append(SkippedLine(line_number=idx + 1, text=line, reason="label"))
                idx += 1
                continue
            if SINGLE_LINE_RE.match(line):
                break
            examined += 1

            if field == "route":
                field = "weight"
                if HAS_LETTER_RE.search(line) and not RECORD_START_RE.match(line):
                    route = line.strip()
                    idx += 1
                    continue
                # No route: the record cannot be emitted, leave the line for the main scan.
                break
            if self._starts_next_record(lines, idx):
                break
            if field == "weight":
                field = "boxes"
                match = WEIGHT_LINE_RE.match(line)
                if match:
                    weight = parse_weight(match.group("value"))
                    idx += 1
                    continue
            if field == "boxes":
                field = "done"
                match = BOXES_LINE_RE.match(line)
                if match:
                    boxes = parse_box_count(match.group("value"))
                    idx += 1
        return route, weight, boxes, idx

    def _starts_next_record(self, lines: list[str], idx: int) -> bool:
        """A bare reference line followed by a route line opens the next record."""
        if not lines[idx].strip().isdigit():
            return False
        for line in lines[idx + 1 :]:
            if not line.strip() or self.is_label_line(line):
                continue
            return bool(HAS_LETTER_RE.search(line)) and not RECORD_START_RE.match(line)
        return False

    @staticmethod
    def is_label_line(line: str) -> bool:
        text = line.strip()
        if not text:
            return False
        if DECORATED_LABEL_RE.match(text):
            return True
        if text.endswith(":") and not re.search(r"\d", text):
            return True
        words = set(re.findall(r"[^\W\d_]+", text.upper()))
        hits = sum(1 for group in HEADER_WORDS if words.intersection(group))
        return hits >= 2
