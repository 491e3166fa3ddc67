"""
File: schema.py
Purpose: Pydantic contracts shared by the formatter and the collaborators.
Dependencies: pydantic >=2.0
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ingestion.schema import CrashAnalyzerError


# ═══════════════════════════════════════════════════════════════
#  ISSUE
# ═══════════════════════════════════════════════════════════════


class FormattedIssue(BaseModel):
    """Ticket body derived from one canonical record.

    Recomputed whenever the record or its overrides change; never stored.
    """
    model_config = ConfigDict(frozen=True)

    summary: str
    description: str

    def clipboard_text(self) -> str:
        return f"Summary: {self.summary}\n\nDescription:\n{self.description}"


# ═══════════════════════════════════════════════════════════════
#  COLLABORATOR PAYLOADS
# ═══════════════════════════════════════════════════════════════


class LogEntry(BaseModel):
    """One line returned by the log store."""
    model_config = ConfigDict(frozen=True)

    date: str
    time: str
    msg: str

    def render(self) -> str:
        return f"[{self.date} {self.time}] {self.msg}"


class SimilarTicket(BaseModel):
    """An existing ticket that may describe the same crash."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ticket_no: str = Field(alias="Ticket No")
    summary: str = Field(alias="Summary")
    similarity_score: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, alias="Similarity Score",
    )


class TicketReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)
    key: str


class BulkTicketOutcome(BaseModel):
    """Settled result of creating tickets for several records."""
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    keys: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def status_message(self) -> str:
        return f"Process complete: {self.succeeded} succeeded, {self.failed} failed."


# ═══════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ═══════════════════════════════════════════════════════════════


class FormatError(CrashAnalyzerError):
    """Raised when a record lacks the structure needed to build an issue."""


class TicketCreationError(CrashAnalyzerError):
    """Raised by the issue tracker when a ticket cannot be created."""
