from __future__ import annotations

from datetime import date as Date
from typing import Literal

from pydantic import BaseModel, Field, field_validator

ImportMode = Literal["merge", "replace"]
ParseLayout = Literal["tabular", "loose", "empty"]


class ImportRecord(BaseModel):
    transport_reference: str
    route: str = ""
    weight: float = Field(default=0.0, ge=0)
    box_count: int = Field(default=0, ge=0)
    date: Date

    @field_validator("transport_reference", "route", mode="before")
    @classmethod
    def _strip_text(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @property
    def business_key(self) -> tuple[str, str]:
        return (self.date.isoformat(), self.transport_reference)

    @property
    def content_key(self) -> tuple[str, str, float, int]:
        return (self.date.isoformat(), self.route, round(self.weight, 3), self.box_count)

    def stamped(self, target: Date) -> "ImportRecord":
        """Copy of this record bound to ``target``."""
        return ImportRecord(
            transport_reference=self.transport_reference,
            route=self.route,
            weight=self.weight,
            box_count=self.box_count,
            date=target,
        )


class StoredImportRecord(ImportRecord):
    id: str

    def to_record(self) -> ImportRecord:
        return ImportRecord(**self.model_dump(exclude={"id"}))


class SkippedLine(BaseModel):
    line_number: int
    text: str
    reason: Literal["blank", "label", "too_few_columns", "missing_reference", "missing_route", "unrecognized"]


class ParseResult(BaseModel):
    layout: ParseLayout
    records: list[ImportRecord] = Field(default_factory=list)
    skipped: list[SkippedLine] = Field(default_factory=list)


class DedupResult(BaseModel):
    accepted: list[ImportRecord] = Field(default_factory=list)
    duplicates: list[ImportRecord] = Field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


class ImportReport(BaseModel):
    date: Date
    mode: ImportMode
    layout: ParseLayout | None = None
    candidates: int = 0
    accepted: int = 0
    duplicates: int = 0
    duplicate_references: list[str] = Field(default_factory=list)
    skipped: list[SkippedLine] = Field(default_factory=list)
    committed: bool = False
    records: list[ImportRecord] = Field(default_factory=list)


class TextImportRequest(BaseModel):
    date: Date
    text: str
    mode: ImportMode | None = None


class RecordInput(BaseModel):
    transport_reference: str = Field(min_length=1)
    route: str = ""
    weight: float = Field(default=0.0, ge=0)
    box_count: int = Field(default=0, ge=0)


class RecordsImportRequest(BaseModel):
    date: Date
    records: list[RecordInput] = Field(default_factory=list)
    mode: ImportMode | None = None
