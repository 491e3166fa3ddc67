"""
File: bulk.py
Purpose: Actions over a selection of records (ticket creation, log export).
Dependencies: asyncio (stdlib)

Calls for different records are independent, so they run concurrently
and are settled individually: one failed ticket never cancels the rest.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

from integration.logger import get_logger
from ticketing.clients import LogSearchClient, TicketTracker
from ticketing.formatter import IssueFormatter
from ticketing.log_filter import log_filter_for
from ticketing.schema import BulkTicketOutcome, LogEntry, TicketReceipt

_log = get_logger("ticketing.bulk")

ProgressCallback = Callable[[int, int], None]

_BANNER = "=" * 70
NO_LOGS_MESSAGE = "No logs found for this item with the default filter.\n"


async def create_tickets(
    records: Sequence[Mapping[str, Any]],
    tracker: TicketTracker,
    formatter: Optional[IssueFormatter] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BulkTicketOutcome:
    """Format and create one ticket per record.

    Args:
        records: Selected canonical records.
        tracker: Issue-tracker collaborator.
        formatter: Issue formatter (a default one is created if omitted).
        on_progress: Called with ``(completed, total)`` after each call
            settles.

    Returns:
        :class:`BulkTicketOutcome` with keys of created tickets and the
        error message of every failure.
    """
    formatter = formatter or IssueFormatter()
    total = len(records)
    completed = 0

    async def _create(record: Mapping[str, Any]) -> TicketReceipt:
        nonlocal completed
        try:
            return await tracker.create_ticket(formatter.format(record))
        finally:
            completed += 1
            if on_progress:
                on_progress(completed, total)

    settled = await asyncio.gather(
        *(_create(r) for r in records), return_exceptions=True,
    )

    outcome = BulkTicketOutcome()
    for record, result in zip(records, settled):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            outcome.failed += 1
            outcome.errors.append(f"{record.get('id', '?')}: {result}")
        else:
            outcome.succeeded += 1
            outcome.keys.append(result.key)

    _log.info(
        "bulk_tickets_settled",
        succeeded=outcome.succeeded,
        failed=outcome.failed,
    )
    return outcome


async def collect_logs(
    records: Sequence[Mapping[str, Any]],
    log_search: LogSearchClient,
) -> List[List[LogEntry]]:
    """Fetch logs for every record with its exit-code derived filter.

    The result is aligned with *records*.
    """
    return list(
        await asyncio.gather(
            *(
                log_search.fetch_logs(str(r.get("id", "")), log_filter_for(r))
                for r in records
            )
        )
    )


def render_log_export(
    records: Sequence[Mapping[str, Any]],
    logs: Sequence[Sequence[LogEntry]],
    generated_at: datetime,
) -> str:
    """Render the plain-text bulk log export.

    Raises:
        ValueError: If *logs* is not aligned with *records*.
    """
    if len(records) != len(logs):
        raise ValueError(
            f"Got logs for {len(logs)} items but {len(records)} records were selected"
        )

    parts = [
        f"Bulk Log Export for {len(records)} items\n",
        f"Timestamp: {generated_at.isoformat()}\n\n",
    ]
    for index, (record, entries) in enumerate(zip(records, logs), start=1):
        parts.append(f"{_BANNER}\n")
        parts.append(
            f"  ITEM {index} | Crash-ID: {record.get('Crash-ID') or 'N/A'} "
            f"| Service: {record.get('Service_Reason', '')}\n"
        )
        parts.append(f"{_BANNER}\n\n")
        if entries:
            parts.append("\n".join(entry.render() for entry in entries))
        else:
            parts.append(NO_LOGS_MESSAGE)
        parts.append("\n\n")
    return "".join(parts)


def export_file_name(generated_at: datetime) -> str:
    return f"crash_logs_export_{generated_at.date().isoformat()}.txt"
