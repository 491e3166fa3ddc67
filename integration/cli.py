"""CLI helpers — output formatting and Rich widgets."""

from __future__ import annotations

from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ingestion.schema import ProcessingResult
from ticketing.log_filter import parse_recovery_event
from ticketing.schema import BulkTicketOutcome, FormattedIssue, LogEntry, SimilarTicket

console = Console(stderr=True)


# ── formatting helpers ─────────────────────────────────────────────


def truncate(text: str, width: int = 60) -> str:
    """Shorten *text* to *width* characters with an ellipsis."""
    text = " ".join(str(text).split())
    if len(text) <= width:
        return text
    return text[: width - 1] + "…"


def format_similarity(score: Optional[float]) -> str:
    """Format a 0.0-1.0 similarity score as a coloured percentage."""
    if score is None:
        return "[dim]—[/dim]"
    pct = score * 100
    if pct >= 85:
        return f"[green]{pct:.0f}%[/green]"
    if pct >= 60:
        return f"[yellow]{pct:.0f}%[/yellow]"
    return f"[red]{pct:.0f}%[/red]"


# ── Rich widgets ───────────────────────────────────────────────────


def create_progress() -> Progress:
    """Create a Rich Progress bar for bulk actions."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def display_records_table(result: ProcessingResult) -> None:
    """Print one line per canonical record of an upload."""
    table = Table(
        title=f"Analysis for {result.file_name}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Service", style="white")
    table.add_column("VIN", style="yellow")
    table.add_column("Exit", style="red")
    table.add_column("Reset reason", style="green")

    for index, record in enumerate(result.records, start=1):
        event = parse_recovery_event(record.get("reset_reason", ""))
        table.add_row(
            str(index),
            escape(record.get("id", "")),
            escape(record.get("Service_Reason") or "N/A"),
            escape(record.get("VIN") or record.get("vin") or "—"),
            str(event.get("exit_code", "—")),
            escape(truncate(record.get("reset_reason", ""), 50)),
        )

    console.print(table)
    console.print(
        f"Found [bold]{result.row_count}[/bold] unique crash events "
        f"({result.duplicates_removed} duplicates removed from {result.input_rows} rows).",
    )


def display_issue_panel(issue: FormattedIssue) -> None:
    console.print(
        Panel(
            Text(issue.description),
            title=escape(issue.summary),
            border_style="cyan",
            padding=(1, 2),
        ),
    )


def display_logs(record_id: str, pattern: str, logs: Sequence[LogEntry]) -> None:
    console.print(f"[bold]Logs for {escape(record_id)}[/bold]  (filter: [cyan]{escape(pattern)}[/cyan])")
    if not logs:
        console.print("  [dim]No logs matched the filter.[/dim]")
        return
    for entry in logs:
        console.print(f"  {escape(entry.render())}")


def display_similar_tickets(tickets: Sequence[SimilarTicket]) -> None:
    table = Table(title="Similar Tickets", show_header=True)
    table.add_column("Ticket", style="cyan", no_wrap=True)
    table.add_column("Summary", style="white")
    table.add_column("Similarity")
    for ticket in tickets:
        table.add_row(escape(ticket.ticket_no), escape(ticket.summary), format_similarity(ticket.similarity_score))
    console.print(table)


def display_ticket_outcome(outcome: BulkTicketOutcome) -> None:
    style = "green" if outcome.failed == 0 else "yellow"
    lines: List[str] = [outcome.status_message()]
    if outcome.keys:
        lines.append("Created: " + ", ".join(outcome.keys))
    for err in outcome.errors:
        lines.append(f"[red]✗[/red] {escape(err)}")
    console.print(
        Panel("\n".join(lines), title="Tickets", border_style=style, padding=(1, 2)),
    )


def display_error(error: Exception, context: str = "") -> None:
    """Display a formatted error panel."""
    msg = f"[red]✗ Error{f' ({escape(context)})' if context else ''}[/red]\n\n{escape(str(error))}"
    console.print(Panel(msg, title="Error", border_style="red", padding=(1, 2)))

