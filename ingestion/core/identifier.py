"""Stamp a synthetic, run-unique ``id`` onto each canonical record."""

from __future__ import annotations

from typing import List, Mapping, Sequence

from ingestion.schema import CRASH_ID_FIELD, ID_FIELD, CanonicalRecord


def record_id(record: Mapping[str, object], index: int) -> str:
    """``"<Crash-ID or 'no-id'>-<index>"``."""
    return f"{record.get(CRASH_ID_FIELD) or 'no-id'}-{index}"


def assign_ids(records: Sequence[Mapping[str, str]]) -> List[CanonicalRecord]:
    """Return new records carrying an ``id`` field.

    ``index`` is the position in the final, deduplicated sequence, so ids
    stay unique even when several rows share (or lack) a Crash-ID.
    The input mappings are not modified.
    """
    return [
        {**record, ID_FIELD: record_id(record, index)}
        for index, record in enumerate(records)
    ]
