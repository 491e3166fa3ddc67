"""
File: core/deduplicator.py
Purpose: Two-phase identity resolution, one canonical row per incident.
Dependencies: Standard library only (re).

The same physical reset is often uploaded several times by the vehicle
telemetry.  Rows are collapsed with two mutually exclusive identities:

  1. Crash-ID — authoritative whenever it is present and not "n/a".
  2. Composite key — (exit code, service, VIN) parsed from the
     ``reset_reason`` text, for every remaining row.

In both phases the first row seen for a key wins.  Crash-ID survivors
are emitted before composite survivors.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ingestion.schema import (
    CRASH_ID_FIELD,
    RESET_REASON_FIELD,
    CompositeKey,
    DeduplicationResult,
    IdentityStrategy,
    NormalizedRecord,
)
from integration.logger import get_logger

logger = get_logger("ingestion.deduplicator")

# "exit_code: 9", "Exit-Code=11", "exit code : 3".  The lookbehind keeps
# "preexit_code" out; requiring the separator right after "code" keeps
# "exit_codex: 5" out.
EXIT_CODE_PATTERN = re.compile(r"(?<![A-Za-z])exit[_\s-]*code\s*[:=]\s*(\d+)", re.IGNORECASE)
SERVICE_PATTERN = re.compile(r"service\s*:\s*\[([^\]]+)\]", re.IGNORECASE)

DEFAULT_EXIT_CODE = "NA"
DEFAULT_SERVICE = "UNKNOWN"
DEFAULT_VIN = "NO_VIN"

_INVALID_CRASH_IDS = frozenset({"", "n/a"})


# ═══════════════════════════════════════════════════════════════
#  FIELD EXTRACTION
# ═══════════════════════════════════════════════════════════════


def usable_crash_id(record: Mapping[str, object]) -> Optional[str]:
    """Return the trimmed Crash-ID if it can act as an identity, else None."""
    raw = record.get(CRASH_ID_FIELD)
    if not isinstance(raw, str):
        return None
    crash_id = raw.strip()
    if crash_id.lower() in _INVALID_CRASH_IDS:
        return None
    return crash_id


def identity_strategy(record: Mapping[str, object]) -> IdentityStrategy:
    if usable_crash_id(record) is not None:
        return IdentityStrategy.CRASH_ID
    return IdentityStrategy.COMPOSITE


def extract_exit_code(reset_reason: str) -> Optional[str]:
    """Return the digits of the first exit-code token, or None."""
    match = EXIT_CODE_PATTERN.search(reset_reason or "")
    return match.group(1) if match else None


def extract_service(reset_reason: str) -> Optional[str]:
    """Return the trimmed name inside the first ``service: [...]`` token."""
    match = SERVICE_PATTERN.search(reset_reason or "")
    return match.group(1).strip() if match else None


def find_vin_column(record: Mapping[str, object]) -> Optional[str]:
    """Return the column name that case-insensitively equals ``vin``."""
    for column in record.keys():
        if str(column).lower() == "vin":
            return column
    return None


def composite_key(
    record: Mapping[str, object],
    vin_column: Optional[str],
) -> CompositeKey:
    """Build the (exit code, service, VIN) identity of *record*.

    ``vin_column`` is resolved once per partition by the caller; ``None``
    means the upload carries no VIN column.
    """
    reset_reason = record.get(RESET_REASON_FIELD) or ""
    if not isinstance(reset_reason, str):
        reset_reason = str(reset_reason)

    exit_code = extract_exit_code(reset_reason)
    service = extract_service(reset_reason)

    if vin_column is None:
        vin = DEFAULT_VIN
    else:
        vin = str(record.get(vin_column) or "")

    return CompositeKey(
        exit_code=exit_code if exit_code is not None else DEFAULT_EXIT_CODE,
        service=service if service is not None else DEFAULT_SERVICE,
        vin=vin,
    )


# ═══════════════════════════════════════════════════════════════
#  DEDUPLICATOR
# ═══════════════════════════════════════════════════════════════


class Deduplicator:
    """Collapse repeated uploads of the same incident.

    Example::

        result = Deduplicator().deduplicate([
            {"Crash-ID": "X1", "reset_reason": "..."},
            {"Crash-ID": "X1 ", "reset_reason": "..."},
        ])
        len(result.records)  # 1
    """

    def deduplicate(self, records: Sequence[NormalizedRecord]) -> DeduplicationResult:
        """Return the surviving records together with dedup statistics."""
        if not records:
            return DeduplicationResult()

        with_crash_id, without_crash_id = self._partition(records)

        by_crash_id: Dict[str, NormalizedRecord] = {}
        for crash_id, record in with_crash_id:
            if crash_id not in by_crash_id:
                by_crash_id[crash_id] = record

        by_composite: Dict[Tuple[str, str, str], NormalizedRecord] = {}
        vin_column: Optional[str] = None
        if without_crash_id:
            vin_column = find_vin_column(without_crash_id[0])
            for record in without_crash_id:
                key = composite_key(record, vin_column).as_tuple()
                if key not in by_composite:
                    by_composite[key] = record

        survivors = list(by_crash_id.values()) + list(by_composite.values())
        removed = len(records) - len(survivors)

        logger.debug(
            "deduplication_completed",
            input_rows=len(records),
            crash_id_survivors=len(by_crash_id),
            composite_survivors=len(by_composite),
            duplicates_removed=removed,
            vin_column=vin_column,
        )

        return DeduplicationResult(
            records=survivors,
            crash_id_count=len(by_crash_id),
            composite_count=len(by_composite),
            duplicates_removed=removed,
            vin_column=vin_column,
        )

    @staticmethod
    def _partition(
        records: Sequence[NormalizedRecord],
    ) -> Tuple[List[Tuple[str, NormalizedRecord]], List[NormalizedRecord]]:
        with_crash_id: List[Tuple[str, NormalizedRecord]] = []
        without_crash_id: List[NormalizedRecord] = []
        for record in records:
            crash_id = usable_crash_id(record)
            if crash_id is None:
                without_crash_id.append(record)
            else:
                with_crash_id.append((crash_id, record))
        return with_crash_id, without_crash_id


def remove_duplicates(records: Sequence[NormalizedRecord]) -> List[NormalizedRecord]:
    """Return only the surviving records, Crash-ID group first."""
    return Deduplicator().deduplicate(records).records
