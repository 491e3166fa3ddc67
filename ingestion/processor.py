"""
File: processor.py
Purpose: Run Column Filter → Deduplicator → Row Identifier Assigner.
Dependencies: Standard library only.

The three stages are total over mapping rows and never suspend or
perform I/O; the async surface lives in ``integration.pipeline``.
"""

from __future__ import annotations

import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ingestion.core.column_filter import ColumnFilter
from ingestion.core.deduplicator import Deduplicator
from ingestion.core.identifier import assign_ids
from ingestion.schema import CanonicalRecord, DeduplicationResult, ProcessingError
from integration.logger import get_logger

logger = get_logger("ingestion.processor")


class CrashRecordProcessor:
    """Turns parsed CSV rows into canonical, uniquely identified records.

    Args:
        ignored_columns: Block-list override for the column filter.

    Example::

        processor = CrashRecordProcessor()
        records = processor.process(rows)
        records[0]["id"]  # "CR-1001-0"
    """

    def __init__(self, ignored_columns: Optional[Iterable[str]] = None) -> None:
        self._column_filter = ColumnFilter(ignored_columns)
        self._deduplicator = Deduplicator()
        self.last_result: Optional[DeduplicationResult] = None

    def process(self, rows: Sequence[Any]) -> List[CanonicalRecord]:
        """Run all three stages over *rows*.

        Raises:
            ProcessingError: If a row is not a string-keyed mapping.
        """
        start = time.perf_counter()
        self._ensure_mappings(rows)

        normalized = self._column_filter.filter_records(rows)
        dedup = self._deduplicator.deduplicate(normalized)
        records = assign_ids(dedup.records)
        self.last_result = dedup

        logger.debug(
            "records_processed",
            input_rows=len(rows),
            output_rows=len(records),
            duplicates_removed=dedup.duplicates_removed,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return records

    @staticmethod
    def _ensure_mappings(rows: Sequence[Any]) -> None:
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                raise ProcessingError(
                    f"Row {index + 1} is not a mapping of column names to values "
                    f"(got {type(row).__name__})"
                )


def process_crash_records(
    rows: Sequence[Any],
    ignored_columns: Optional[Iterable[str]] = None,
) -> List[CanonicalRecord]:
    """Functional shortcut for :meth:`CrashRecordProcessor.process`."""
    return CrashRecordProcessor(ignored_columns).process(rows)
