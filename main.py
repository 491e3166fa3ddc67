"""main.py — CLI entry point for the Reset Crash Analyzer.

Uses **Click** for command parsing and **Rich** for output.

Usage examples::

    python main.py process crash_report.csv
    python main.py preview crash_report.csv --id CR-1001-0 --occurrences 3
    python main.py logs crash_report.csv --id CR-1001-0
    python main.py similar crash_report.csv --id CR-1001-0
    python main.py create-tickets crash_report.csv --all
    python main.py export-logs crash_report.csv --all -o exports
    python main.py example-csv -o example_crash_report.csv
    python main.py validate
    python main.py version
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.markup import escape

from ingestion.csv_reader import EXAMPLE_CSV
from ingestion.schema import CanonicalRecord, ProcessingError, ProcessingResult
from integration.cli import (
    console,
    create_progress,
    display_error,
    display_issue_panel,
    display_logs,
    display_records_table,
    display_similar_tickets,
    display_ticket_outcome,
)
from integration.config_manager import ConfigManager, SystemConfig
from integration.logger import get_logger, setup_logging
from integration.pipeline import CrashAnalyzerPipeline

VERSION = "1.0.0"


# ── Click group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="crash-analyzer")
@click.option(
    "--config",
    "config_path",
    default="config.yaml",
    envvar="CRASH_ANALYZER_CONFIG",
    help="Path to config.yaml.",
    type=click.Path(),
)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """🚗 Reset Crash Analyzer

    Deduplicate vehicle reset crash reports, inspect logs and similar
    tickets, and turn each unique crash into an issue-tracker ticket.

    \b
    Quick start:
      python main.py example-csv -o example.csv
      python main.py process example.csv
      python main.py --help
    """
    ctx.ensure_object(dict)
    try:
        cfg = ConfigManager.load(config_path)
    except Exception as exc:
        console.print(f"[red]Failed to load config:[/red] {escape(str(exc))}")
        raise SystemExit(2) from exc

    ctx.obj["config"] = cfg
    setup_logging(cfg.system.log_level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── shared helpers ─────────────────────────────────────────────────


def _load(
    config: SystemConfig, csv_path: str,
) -> Tuple[CrashAnalyzerPipeline, ProcessingResult]:
    """Run the pipeline over *csv_path* or exit with status 1."""
    pipeline = CrashAnalyzerPipeline(config)
    try:
        result = asyncio.run(pipeline.load_csv(csv_path))
    except ProcessingError as exc:
        display_error(exc, context=Path(csv_path).name)
        raise SystemExit(1) from exc
    return pipeline, result


def _select(
    pipeline: CrashAnalyzerPipeline,
    record_ids: Tuple[str, ...],
    select_all: bool,
) -> List[CanonicalRecord]:
    """Resolve ``--id`` / ``--all`` into records or exit with status 1."""
    if select_all:
        return list(pipeline.records)
    if not record_ids:
        console.print("[red]Select rows with --id (repeatable) or --all.[/red]")
        raise SystemExit(1)

    unknown = [rid for rid in record_ids if pipeline.find_record(rid) is None]
    if unknown:
        console.print(f"[red]Unknown row id(s):[/red] {escape(', '.join(unknown))}")
        raise SystemExit(1)
    return pipeline.select(record_ids)


def _require_record(pipeline: CrashAnalyzerPipeline, record_id: str) -> CanonicalRecord:
    record = pipeline.find_record(record_id)
    if record is None:
        console.print(f"[red]Unknown row id:[/red] '{escape(record_id)}'")
        raise SystemExit(1)
    return record


# ── process ────────────────────────────────────────────────────────


@cli.command()
@click.argument("csv_path", type=click.Path())
@click.option("--json", "as_json", is_flag=True, default=False, help="Print records as JSON on stdout.")
@click.pass_context
def process(ctx: click.Context, csv_path: str, as_json: bool) -> None:
    """Deduplicate a crash report and list the unique crash events.

    \b
    Examples:
      python main.py process crash_report.csv
      python main.py process crash_report.csv --json > records.json
    """
    config: SystemConfig = ctx.obj["config"]
    _, result = _load(config, csv_path)

    if as_json:
        click.echo(json.dumps([dict(r) for r in result.records], indent=2))
        return

    if not result.records:
        console.print(f"[yellow]No crash events found in {escape(result.file_name)}.[/yellow]")
        return
    display_records_table(result)


# ── preview ────────────────────────────────────────────────────────


@cli.command()
@click.argument("csv_path", type=click.Path())
@click.option("--id", "record_ids", multiple=True, help="Row id to preview.  Repeatable.")
@click.option("--all", "select_all", is_flag=True, default=False, help="Preview every row.")
@click.option("--occurrences", type=click.IntRange(min=1), default=None, help="Occurrence count override.")
@click.option("--log-line", "log_lines", multiple=True, help="Log line to attach as pre-analysis.  Repeatable.")
@click.option("--copy-format", is_flag=True, default=False, help="Print 'Summary/Description' text on stdout.")
@click.pass_context
def preview(
    ctx: click.Context,
    csv_path: str,
    record_ids: Tuple[str, ...],
    select_all: bool,
    occurrences: Optional[int],
    log_lines: Tuple[str, ...],
    copy_format: bool,
) -> None:
    """Preview the ticket that would be created for each selected row.

    \b
    Examples:
      python main.py preview crash_report.csv --all
      python main.py preview crash_report.csv --id CR-1001-0 --occurrences 4
    """
    config: SystemConfig = ctx.obj["config"]
    pipeline, _ = _load(config, csv_path)

    for record in _select(pipeline, record_ids, select_all):
        issue = pipeline.format_issue(
            record["id"], occurrences=occurrences, selected_logs=log_lines,
        )
        if copy_format:
            click.echo(issue.clipboard_text())
            click.echo()
        else:
            display_issue_panel(issue)


# ── logs ───────────────────────────────────────────────────────────


@cli.command()
@click.argument("csv_path", type=click.Path())
@click.option("--id", "record_id", required=True, help="Row id.")
@click.option("--regex", "pattern", default=None, help="Override the exit-code derived filter.")
@click.pass_context
def logs(ctx: click.Context, csv_path: str, record_id: str, pattern: Optional[str]) -> None:
    """Search the log store for one crash event.

    \b
    Example:
      python main.py logs crash_report.csv --id CR-1001-0
    """
    from ticketing.clients import InMemoryLogStore
    from ticketing.log_filter import detail_log_filter

    config: SystemConfig = ctx.obj["config"]
    pipeline, _ = _load(config, csv_path)
    record = _require_record(pipeline, record_id)

    pattern = pattern or detail_log_filter(record)
    try:
        re.compile(pattern)
    except re.error as exc:
        console.print(f"[red]Invalid regex:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc

    store = InMemoryLogStore(latency_seconds=config.ticketing.latency_seconds)
    generation = pipeline.state.generation
    entries = asyncio.run(
        pipeline.run_guarded(generation, store.fetch_logs(record_id, pattern)),
    )
    display_logs(record_id, pattern, entries or [])


# ── similar ────────────────────────────────────────────────────────


@cli.command()
@click.argument("csv_path", type=click.Path())
@click.option("--id", "record_id", required=True, help="Row id.")
@click.pass_context
def similar(ctx: click.Context, csv_path: str, record_id: str) -> None:
    """List existing tickets that may describe the same crash.

    \b
    Example:
      python main.py similar crash_report.csv --id CR-1001-0
    """
    from ticketing.clients import InMemoryTicketTracker

    config: SystemConfig = ctx.obj["config"]
    pipeline, _ = _load(config, csv_path)
    record = _require_record(pipeline, record_id)

    tracker = InMemoryTicketTracker(
        project_key=config.ticketing.project_key,
        latency_seconds=config.ticketing.latency_seconds,
    )
    tickets = asyncio.run(
        pipeline.run_guarded(
            pipeline.state.generation,
            tracker.fetch_similar_tickets(record.get("Service_Reason", ""), record_id),
        ),
    )
    if not tickets:
        console.print("[yellow]No similar tickets found.[/yellow]")
        return
    display_similar_tickets(tickets)


# ── create-tickets ─────────────────────────────────────────────────


@cli.command("create-tickets")
@click.argument("csv_path", type=click.Path())
@click.option("--id", "record_ids", multiple=True, help="Row id.  Repeatable.")
@click.option("--all", "select_all", is_flag=True, default=False, help="Create a ticket for every row.")
@click.option(
    "--failure-rate",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Simulated tracker failure rate (default: from config).",
)
@click.option("--seed", type=int, default=None, help="Seed for the simulated tracker.")
@click.pass_context
def create_tickets_cmd(
    ctx: click.Context,
    csv_path: str,
    record_ids: Tuple[str, ...],
    select_all: bool,
    failure_rate: Optional[float],
    seed: Optional[int],
) -> None:
    """Create issue-tracker tickets for the selected rows.

    Exits with status 3 when some tickets could not be created.

    \b
    Examples:
      python main.py create-tickets crash_report.csv --all
      python main.py create-tickets crash_report.csv --id CR-1001-0 --id no-id-2
    """
    from ticketing.bulk import create_tickets
    from ticketing.clients import InMemoryTicketTracker

    config: SystemConfig = ctx.obj["config"]
    log = get_logger("cli.create_tickets")
    pipeline, _ = _load(config, csv_path)
    selected = _select(pipeline, record_ids, select_all)
    if not selected:
        console.print("[yellow]No rows to create tickets for.[/yellow]")
        return

    tracker = InMemoryTicketTracker(
        project_key=config.ticketing.project_key,
        failure_rate=config.ticketing.failure_rate if failure_rate is None else failure_rate,
        latency_seconds=config.ticketing.latency_seconds,
        seed=config.ticketing.random_seed if seed is None else seed,
    )

    progress = create_progress()
    with progress:
        task = progress.add_task(
            f"Creating tickets... (0/{len(selected)})", total=len(selected),
        )

        def _on_progress(done: int, total: int) -> None:
            progress.update(
                task, completed=done, description=f"Creating tickets... ({done}/{total})",
            )

        outcome = asyncio.run(
            create_tickets(selected, tracker, on_progress=_on_progress),
        )

    log.info("tickets_created", succeeded=outcome.succeeded, failed=outcome.failed)
    display_ticket_outcome(outcome)
    if outcome.failed:
        raise SystemExit(3)


# ── export-logs ────────────────────────────────────────────────────


@cli.command("export-logs")
@click.argument("csv_path", type=click.Path())
@click.option("--id", "record_ids", multiple=True, help="Row id.  Repeatable.")
@click.option("--all", "select_all", is_flag=True, default=False, help="Export logs for every row.")
@click.option("--output", "-o", default=None, help="Output directory (default: from config).")
@click.pass_context
def export_logs(
    ctx: click.Context,
    csv_path: str,
    record_ids: Tuple[str, ...],
    select_all: bool,
    output: Optional[str],
) -> None:
    """Download logs for the selected rows into one text file.

    \b
    Example:
      python main.py export-logs crash_report.csv --all -o exports
    """
    from ticketing.bulk import collect_logs, export_file_name, render_log_export
    from ticketing.clients import InMemoryLogStore

    config: SystemConfig = ctx.obj["config"]
    pipeline, _ = _load(config, csv_path)
    selected = _select(pipeline, record_ids, select_all)
    if not selected:
        console.print("[yellow]No rows to export logs for.[/yellow]")
        return

    store = InMemoryLogStore(latency_seconds=config.ticketing.latency_seconds)
    with console.status("[bold green]Fetching logs for selected rows …"):
        entries = asyncio.run(collect_logs(selected, store))

    now = datetime.now(timezone.utc)
    out_dir = Path(output or config.logs.export_directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_file_name(now)
    path.write_text(render_log_export(selected, entries, now), encoding="utf-8")

    console.print(f"[green]✅ Logs downloaded:[/green] {escape(str(path))}")


# ── example-csv ────────────────────────────────────────────────────


@cli.command("example-csv")
@click.option(
    "--output",
    "-o",
    default="example_crash_report.csv",
    show_default=True,
    help="Where to write the example file.",
    type=click.Path(),
)
def example_csv(output: str) -> None:
    """Write a small example crash report CSV.

    \b
    Example:
      python main.py example-csv -o example_crash_report.csv
    """
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(EXAMPLE_CSV, encoding="utf-8")
    console.print(f"[green]✅ Example CSV written to:[/green] {escape(str(path))}")


# ── validate ───────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--config",
    "config_path",
    default="config.yaml",
    help="Config file to validate.",
    type=click.Path(),
)
def validate(config_path: str) -> None:
    """Validate the configuration file.

    \b
    Example:
      python main.py validate --config config.yaml
    """
    try:
        cfg = ConfigManager.load(config_path)
    except Exception as exc:
        console.print(f"[red]Invalid config:[/red] {escape(str(exc))}")
        raise SystemExit(1)

    issues = ConfigManager.validate(cfg)
    if issues:
        console.print("[yellow]⚠ Validation issues:[/yellow]")
        for issue in issues:
            console.print(f"  • {escape(issue)}")
        raise SystemExit(1)

    console.print("[green]✅ Configuration is valid.[/green]")
    console.print(f"  Version         : {cfg.system.version}")
    console.print(f"  Log level       : {cfg.system.log_level}")
    console.print(f"  Ignored columns : {len(cfg.ingestion.ignored_columns)}")
    console.print(f"  Project key     : {cfg.ticketing.project_key}")
    console.print(f"  Export dir      : {cfg.logs.export_directory}")


# ── version ────────────────────────────────────────────────────────


@cli.command()
def version() -> None:
    """Show version and dependency information.

    \b
    Example:
      python main.py version
    """
    import platform
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as dist_version

    console.print("[bold]Reset Crash Analyzer[/bold]")
    console.print(f"  Version  : {VERSION}")
    console.print(f"  Python   : {platform.python_version()}")

    deps = {
        "click": "click",
        "rich": "rich",
        "pydantic": "pydantic",
        "structlog": "structlog",
        "pyyaml": "PyYAML",
        "pandas": "pandas",
        "jinja2": "Jinja2",
    }
    for label, dist in deps.items():
        try:
            console.print(f"  {label:12s}: {dist_version(dist)}")
        except PackageNotFoundError:
            console.print(f"  {label:12s}: [dim]not installed[/dim]")


# ── entry point ────────────────────────────────────────────────────

if __name__ == "__main__":
    cli()
