"""
File: core/column_filter.py
Purpose: Drop low-value telemetry columns and normalise column names.
Dependencies: Standard library only.

Each row is filtered on its own, so uploads whose rows carry different
column sets are handled without any schema inference.
"""

from __future__ import annotations

import math
from typing import Any, FrozenSet, Iterable, List, Optional

from ingestion.schema import NormalizedRecord, RawRecord


# Matched against the *untrimmed* column name.
IGNORED_COLUMNS: FrozenSet[str] = frozenset({
    "update_time",
    "frozen_resets",
    "Lifecycle_Duration_h",
    "ynr",
    "vnr",
    "ecu_sw",
    "Kilometer",
    "speed",
    "timestamp_abs",
    "ecu_hw",
    "booking_to",
    "booking_from",
    "fips_id",
})


def coerce_cell(value: Any) -> str:
    """Return *value* as text; missing, falsy and NaN cells become ``""``."""
    if not value:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return value if isinstance(value, str) else str(value)


class ColumnFilter:
    """Removes block-listed columns and trims column names.

    Args:
        ignored_columns: Column names to drop.  Defaults to
            :data:`IGNORED_COLUMNS`.

    Example::

        ColumnFilter().filter_record({" VIN ": "WVW1", "speed": "88"})
        # {"VIN": "WVW1"}
    """

    def __init__(self, ignored_columns: Optional[Iterable[str]] = None) -> None:
        self._ignored = (
            frozenset(ignored_columns) if ignored_columns is not None
            else IGNORED_COLUMNS
        )

    @property
    def ignored_columns(self) -> FrozenSet[str]:
        return self._ignored

    def filter_record(self, record: RawRecord) -> NormalizedRecord:
        """Return a new, normalised copy of a single row."""
        normalized: NormalizedRecord = {}
        for key, value in record.items():
            if key in self._ignored:
                continue
            normalized[str(key).strip()] = coerce_cell(value)
        return normalized

    def filter_records(self, records: Iterable[RawRecord]) -> List[NormalizedRecord]:
        return [self.filter_record(r) for r in records]


def filter_columns(
    records: Iterable[RawRecord],
    ignored_columns: Optional[Iterable[str]] = None,
) -> List[NormalizedRecord]:
    """Functional shortcut for :meth:`ColumnFilter.filter_records`."""
    return ColumnFilter(ignored_columns).filter_records(records)
