"""
Ticketing — turn canonical crash records into issue-tracker tickets.

Public API::

    from ticketing import format_issue

    issue = format_issue(record, occurrences=3)
    print(issue.summary)

Modules:
    formatter   — Jinja2-rendered summary/description pair
    log_filter  — exit-code → log search pattern
    clients     — log-store / tracker protocols + in-memory stand-ins
    bulk        — concurrent ticket creation, bulk log export
    schema      — Pydantic contracts and error kinds
"""

from ticketing.formatter import IssueFormatter, build_error_info, format_issue
from ticketing.schema import (
    BulkTicketOutcome,
    FormatError,
    FormattedIssue,
    LogEntry,
    SimilarTicket,
    TicketCreationError,
    TicketReceipt,
)

__all__ = [
    "BulkTicketOutcome",
    "FormatError",
    "FormattedIssue",
    "IssueFormatter",
    "LogEntry",
    "SimilarTicket",
    "TicketCreationError",
    "TicketReceipt",
    "build_error_info",
    "format_issue",
]
