"""
clients.py — Log-store and issue-tracker collaborators.

The pipeline only depends on the two protocols below.  The in-memory
implementations back the CLI and the tests: they keep their data
immutable once seeded and only expose query methods, mirroring what the
real log store and tracker return.
"""

from __future__ import annotations

import asyncio
import random
import re
from typing import Iterable, List, Optional, Protocol

from integration.logger import get_logger
from ticketing.schema import (
    FormattedIssue,
    LogEntry,
    SimilarTicket,
    TicketCreationError,
    TicketReceipt,
)

_log = get_logger("ticketing.clients")


SAMPLE_LOGS: List[LogEntry] = [
    LogEntry(date="2023-10-27", time="10:00:01.123", msg="Service failure detected, initiating recovery."),
    LogEntry(date="2023-10-27", time="10:00:01.234", msg="Process terminated with SIGSEGV, address 0x0"),
    LogEntry(date="2023-10-27", time="10:00:01.345", msg="segfault at 0 ip 00007f... sp 00007f..."),
    LogEntry(date="2023-10-27", time="10:00:01.456", msg="Core dump generated for process 1234."),
    LogEntry(date="2023-10-27", time="10:00:02.567", msg="cgroup out of memory: Killed process 5678 (service_name)"),
    LogEntry(date="2023-10-27", time="10:00:02.678", msg="oom-kill: task_memcg=/.../service_name"),
]

SAMPLE_TICKETS: List[SimilarTicket] = [
    SimilarTicket(ticket_no="ICONSD-1234", summary="Crash: NavigationService reset due to memory leak", similarity_score=0.89),
    SimilarTicket(ticket_no="ICONSD-5678", summary="infotainment crash after long run", similarity_score=0.75),
    SimilarTicket(ticket_no="ICONSD-9012", summary="Service failure in MediaService on startup", similarity_score=0.62),
]


# ── protocols ──────────────────────────────────────────────────────


class LogSearchClient(Protocol):
    async def fetch_logs(self, row_id: str, pattern: str) -> List[LogEntry]:
        ...


class TicketTracker(Protocol):
    async def fetch_similar_tickets(self, service: str, row_id: str) -> List[SimilarTicket]:
        ...

    async def create_ticket(self, issue: FormattedIssue) -> TicketReceipt:
        ...


# ── in-memory implementations ──────────────────────────────────────


class InMemoryLogStore:
    """Regex search over a fixed set of log lines.

    Args:
        logs: Lines to serve (defaults to :data:`SAMPLE_LOGS`).
        latency_seconds: Artificial delay per query.
    """

    def __init__(
        self,
        logs: Optional[Iterable[LogEntry]] = None,
        latency_seconds: float = 0.0,
    ) -> None:
        self._logs: List[LogEntry] = list(SAMPLE_LOGS if logs is None else logs)
        self._latency = latency_seconds

    @property
    def total_logs(self) -> int:
        return len(self._logs)

    async def fetch_logs(self, row_id: str, pattern: str) -> List[LogEntry]:
        """Return lines whose message matches *pattern* (case-insensitive).

        Raises:
            re.error: If *pattern* is not a valid regular expression.
        """
        _log.debug("logs_requested", row_id=row_id, pattern=pattern)
        regex = re.compile(pattern, re.IGNORECASE)
        if self._latency:
            await asyncio.sleep(self._latency)
        return [entry for entry in self._logs if regex.search(entry.msg)]


class InMemoryTicketTracker:
    """Issue tracker stand-in with a seeded ticket catalogue.

    Args:
        project_key: Prefix of created ticket keys.
        failure_rate: Probability (0-1) that ``create_ticket`` fails.
        latency_seconds: Artificial delay per call.
        seed: Seed for the failure draw and ticket numbers.
        tickets: Existing tickets searched by ``fetch_similar_tickets``.
    """

    def __init__(
        self,
        project_key: str = "ICONSD",
        failure_rate: float = 0.1,
        latency_seconds: float = 0.0,
        seed: Optional[int] = None,
        tickets: Optional[Iterable[SimilarTicket]] = None,
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self.project_key = project_key
        self._failure_rate = failure_rate
        self._latency = latency_seconds
        self._rng = random.Random(seed)
        self._tickets: List[SimilarTicket] = list(SAMPLE_TICKETS if tickets is None else tickets)
        self.created: List[FormattedIssue] = []

    async def fetch_similar_tickets(self, service: str, row_id: str) -> List[SimilarTicket]:
        """Tickets whose summary mentions the service name stem.

        ``"NavigationService"`` is matched as ``"navigation"``; an empty
        service name matches every ticket.
        """
        _log.debug("similar_tickets_requested", service=service, row_id=row_id)
        if self._latency:
            await asyncio.sleep(self._latency)
        stem = (service or "").split("Service")[0].lower()
        return [t for t in self._tickets if stem in t.summary.lower()]

    async def create_ticket(self, issue: FormattedIssue) -> TicketReceipt:
        """Create a ticket and return its key.

        Raises:
            TicketCreationError: When the simulated connection fails.
        """
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._rng.random() < self._failure_rate:
            _log.warning("ticket_creation_failed", summary=issue.summary)
            raise TicketCreationError("Failed to connect to issue tracker server.")

        key = f"{self.project_key}-{self._rng.randint(10000, 99999)}"
        self.created.append(issue)
        _log.info("ticket_created", key=key, summary=issue.summary)
        return TicketReceipt(key=key)
