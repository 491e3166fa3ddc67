"""CrashAnalyzerPipeline — owns the canonical record set of one upload.

Execution flow per upload:
  1. Parse the CSV               (ingestion.csv_reader, awaited off-loop)
  2. Filter columns              (ingestion.core.column_filter)
  3. Deduplicate incidents       (ingestion.core.deduplicator)
  4. Assign row identifiers      (ingestion.core.identifier)
  5. Publish a new PipelineState (replaces the previous one by value)

Steps 2-4 never suspend.  A failure at any step clears the state and
surfaces a single error message; a partially processed upload is never
published.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from ingestion.csv_reader import read_crash_csv
from ingestion.processor import CrashRecordProcessor
from ingestion.schema import CanonicalRecord, ParseError, ProcessingError, ProcessingResult
from integration.config_manager import SystemConfig
from integration.logger import get_logger, new_run_id
from ticketing.formatter import IssueFormatter, build_error_info
from ticketing.schema import FormattedIssue

_log = get_logger(__name__)

T = TypeVar("T")


# ── State container ────────────────────────────────────────────────


@dataclass(frozen=True)
class PipelineState:
    """Snapshot rendered by the front end: either rows or an error message."""

    records: Tuple[CanonicalRecord, ...] = ()
    file_name: str = ""
    error: Optional[str] = None
    generation: int = 0

    @property
    def row_count(self) -> int:
        return len(self.records)


# ── Pipeline ───────────────────────────────────────────────────────


class CrashAnalyzerPipeline:
    """Wire CSV parsing → column filter → dedup → ids → issue formatting.

    Args:
        config: Validated :class:`SystemConfig` (defaults if omitted).
    """

    def __init__(self, config: Optional[SystemConfig] = None) -> None:
        self.config = config or SystemConfig()
        self._state = PipelineState()
        self._formatter = IssueFormatter()

    # ── state ──────────────────────────────────────────────────────

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def records(self) -> Tuple[CanonicalRecord, ...]:
        return self._state.records

    def _next_generation(self) -> int:
        return self._state.generation + 1

    def clear(self) -> PipelineState:
        """Drop records, error and file name; start a new generation."""
        self._state = PipelineState(generation=self._next_generation())
        _log.info("state_cleared", generation=self._state.generation)
        return self._state

    def is_current(self, generation: int) -> bool:
        return generation == self._state.generation

    # ── core sequence ──────────────────────────────────────────────

    def process_rows(self, rows: Sequence[Any]) -> List[CanonicalRecord]:
        """Run filter → dedup → ids synchronously.

        Raises:
            ProcessingError: If a row is not a mapping.
        """
        processor = CrashRecordProcessor(self.config.ingestion.ignored_columns)
        return processor.process(rows)

    # ── public interface ───────────────────────────────────────────

    async def process_upload(
        self,
        rows: Optional[Sequence[Any]],
        file_name: str,
        parse_error: Optional[str] = None,
    ) -> ProcessingResult:
        """Process a parsed upload and publish it as the new state.

        Args:
            rows: Parsed rows from the CSV collaborator.
            file_name: Name of the uploaded file.
            parse_error: Error reported by the parser instead of rows.

        Returns:
            :class:`ProcessingResult` for the new generation.

        Raises:
            ProcessingError: If the parser reported an error or the rows
                have an unexpected shape.  The previous state is cleared
                and the message is kept in ``state.error``.
        """
        generation = self._next_generation()
        self._state = PipelineState(file_name=file_name, generation=generation)
        new_run_id()
        t0 = time.perf_counter()

        _log.info("upload_started", file_name=file_name, generation=generation)

        if parse_error is not None:
            self._fail(parse_error, file_name, generation)
            raise ProcessingError(parse_error, file_name=file_name)

        rows = list(rows or [])
        try:
            records = self.process_rows(rows)
        except ProcessingError as exc:
            message = f"Error processing CSV: {exc}"
            self._fail(message, file_name, generation)
            raise ProcessingError(message, file_name=file_name) from exc

        self._state = PipelineState(
            records=tuple(records),
            file_name=file_name,
            generation=generation,
        )
        result = ProcessingResult(
            records=self._state.records,
            file_name=file_name,
            input_rows=len(rows),
            duplicates_removed=len(rows) - len(records),
            generation=generation,
        )

        _log.info(
            "upload_processed",
            file_name=file_name,
            input_rows=result.input_rows,
            unique_rows=result.row_count,
            duplicates_removed=result.duplicates_removed,
            duration=round(time.perf_counter() - t0, 4),
        )
        return result

    async def load_csv(self, path: str | Path) -> ProcessingResult:
        """Parse the CSV at *path* and process it.

        Raises:
            ProcessingError: If the file cannot be parsed or processed.
        """
        file_name = Path(path).name
        try:
            table = await asyncio.to_thread(
                read_crash_csv,
                path,
                file_name,
                self.config.ingestion.encoding,
            )
        except ParseError as exc:
            return await self.process_upload(None, file_name, parse_error=str(exc))
        return await self.process_upload(table.rows, table.file_name)

    async def run_guarded(self, generation: int, awaitable: Awaitable[T]) -> Optional[T]:
        """Await a downstream fetch; drop its result if a newer upload exists."""
        result = await awaitable
        if not self.is_current(generation):
            _log.info(
                "stale_result_discarded",
                generation=generation,
                current=self._state.generation,
            )
            return None
        return result

    # ── record access & formatting ─────────────────────────────────

    def find_record(self, record_id: str) -> Optional[CanonicalRecord]:
        for record in self._state.records:
            if record.get("id") == record_id:
                return record
        return None

    def select(self, record_ids: Iterable[str]) -> List[CanonicalRecord]:
        """Records whose id is in *record_ids*, in display order."""
        wanted = set(record_ids)
        return [r for r in self._state.records if r.get("id") in wanted]

    def format_issue(
        self,
        record_id: str,
        occurrences: Optional[int] = None,
        selected_logs: Optional[Iterable[str]] = None,
    ) -> FormattedIssue:
        """Format the record *record_id* with the UI's ephemeral overrides.

        Raises:
            KeyError: If no record has that id in the current state.
        """
        record = self.find_record(record_id)
        if record is None:
            raise KeyError(record_id)
        return self._formatter.format(
            record,
            occurrences=occurrences,
            error_info=build_error_info(selected_logs),
        )

    # ── helpers ────────────────────────────────────────────────────

    def _fail(self, message: str, file_name: str, generation: int) -> None:
        self._state = PipelineState(
            file_name=file_name, error=message, generation=generation,
        )
        _log.warning("upload_failed", file_name=file_name, error=message)
