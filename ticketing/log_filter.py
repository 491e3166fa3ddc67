"""Derive log-store search patterns from a record's reset reason.

Exit code 9 is the kernel's SIGKILL (typically the OOM killer) and 11 is
SIGSEGV, so each maps to the log messages those terminations leave.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Union

from ingestion.core.deduplicator import extract_exit_code
from ingestion.schema import RESET_REASON_FIELD

GENERIC_FILTER = "Service failure"
OOM_FILTER = "Service failure|oom-kill|SIGKILL|cgroup out of memory"
SEGFAULT_FILTER = "Service failure|segfault|SIGSEGV"
BROAD_FILTER = "Service failure|oom-kill|SIGKILL|segfault|SIGSEGV|cgroup out of memory"

_FILTERS_BY_EXIT_CODE: Dict[int, str] = {
    9: OOM_FILTER,
    11: SEGFAULT_FILTER,
}

_RESULT_PATTERN = re.compile(r"result:\s*(\w+)")


def parse_recovery_event(reset_reason: str) -> Dict[str, Union[int, str]]:
    """Pull ``exit_code`` (int) and ``result`` (word) out of a reset reason."""
    data: Dict[str, Union[int, str]] = {}
    if not reset_reason or not isinstance(reset_reason, str):
        return data

    exit_code = extract_exit_code(reset_reason)
    if exit_code is not None:
        data["exit_code"] = int(exit_code)

    match = _RESULT_PATTERN.search(reset_reason)
    if match:
        data["result"] = match.group(1)
    return data


def log_filter_for(record: Mapping[str, Any], fallback: str = GENERIC_FILTER) -> str:
    """Return the log search regex for *record*.

    Args:
        record: Canonical record.
        fallback: Pattern used when the exit code is missing or unmapped.
            Bulk export uses :data:`GENERIC_FILTER`; the single-row view
            passes :data:`BROAD_FILTER`.
    """
    event = parse_recovery_event(str(record.get(RESET_REASON_FIELD) or ""))
    exit_code = event.get("exit_code")
    if isinstance(exit_code, int):
        return _FILTERS_BY_EXIT_CODE.get(exit_code, fallback)
    return fallback


def detail_log_filter(record: Mapping[str, Any]) -> str:
    return log_filter_for(record, fallback=BROAD_FILTER)
