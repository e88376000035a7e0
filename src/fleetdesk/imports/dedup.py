from __future__ import annotations

import logging
from typing import Iterable

from fleetdesk.imports.models import DedupResult, ImportRecord

logger = logging.getLogger(__name__)


class DuplicateFilter:
    """
    Drops candidates already on file for their date.

    A candidate is a duplicate when its (date, transport_reference) was seen before,
    either in the existing records or earlier in the same batch (first occurrence wins).
    With ``match_content`` a (date, route, weight, boxes) match also counts; either key is enough.
    """

    def __init__(self, match_content: bool = False):
        self.match_content = match_content

    def filter(self, candidates: Iterable[ImportRecord], existing: Iterable[ImportRecord] = ()) -> DedupResult:
        seen_keys: set[tuple] = set()
        seen_content: set[tuple] = set()
        for record in existing:
            seen_keys.add(record.business_key)
            if self.match_content:
                seen_content.add(record.content_key)

        result = DedupResult()
        for candidate in candidates:
            if self._is_duplicate(candidate, seen_keys, seen_content):
                result.duplicates.append(candidate)
                continue
            result.accepted.append(candidate)
            seen_keys.add(candidate.business_key)
            if self.match_content:
                seen_content.add(candidate.content_key)

        if result.duplicates:
            logger.info(
                "duplicate shipments rejected",
                extra={
                    "accepted": len(result.accepted),
                    "duplicates": result.duplicate_count,
                    "references": [r.transport_reference for r in result.duplicates][:20],
                },
            )
        return result

    def _is_duplicate(self, record: ImportRecord, seen_keys: set[tuple], seen_content: set[tuple]) -> bool:
        if record.business_key in seen_keys:
            return True
        return self.match_content and record.content_key in seen_content
