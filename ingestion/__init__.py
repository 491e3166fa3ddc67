"""
Ingestion — crash-report CSV rows in, canonical incident records out.

Public API::

    from ingestion import process_crash_records, read_crash_csv

    table = read_crash_csv("crash_report.csv")
    records = process_crash_records(table.rows)

Modules:
    csv_reader  — pandas-backed CSV parsing collaborator
    processor   — filter → dedup → id sequence
    schema      — record aliases, result models, error kinds
    core/       — column filter, deduplicator, id assigner
"""

from ingestion.csv_reader import EXAMPLE_CSV, read_crash_csv, read_crash_csv_text
from ingestion.processor import CrashRecordProcessor, process_crash_records
from ingestion.schema import (
    CanonicalRecord,
    CrashAnalyzerError,
    ParsedTable,
    ParseError,
    ProcessingError,
    ProcessingResult,
)

__all__ = [
    "EXAMPLE_CSV",
    "CanonicalRecord",
    "CrashAnalyzerError",
    "CrashRecordProcessor",
    "ParseError",
    "ParsedTable",
    "ProcessingError",
    "ProcessingResult",
    "process_crash_records",
    "read_crash_csv",
    "read_crash_csv_text",
]
