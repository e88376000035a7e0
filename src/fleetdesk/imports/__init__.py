from fleetdesk.imports.cache import DateRecordCache
from fleetdesk.imports.dedup import DuplicateFilter
from fleetdesk.imports.models import (
    DedupResult,
    ImportRecord,
    ImportReport,
    ParseResult,
    RecordInput,
    RecordsImportRequest,
    SkippedLine,
    StoredImportRecord,
    TextImportRequest,
)
from fleetdesk.imports.parser import ShipmentTextParser, parse_box_count, parse_weight
from fleetdesk.imports.service import ShipmentImportService
from fleetdesk.imports.store import ImportStore, SqliteImportStore
from fleetdesk.imports.workbook import ShipmentWorkbookAdapter

__all__ = [
    "DateRecordCache",
    "DedupResult",
    "DuplicateFilter",
    "ImportRecord",
    "ImportReport",
    "ImportStore",
    "ParseResult",
    "RecordInput",
    "RecordsImportRequest",
    "ShipmentImportService",
    "ShipmentTextParser",
    "ShipmentWorkbookAdapter",
    "SkippedLine",
    "SqliteImportStore",
    "StoredImportRecord",
    "TextImportRequest",
    "parse_box_count",
    "parse_weight",
]
