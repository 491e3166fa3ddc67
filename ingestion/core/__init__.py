"""Deterministic ingestion stages: column filtering, dedup, id assignment."""

from ingestion.core.column_filter import IGNORED_COLUMNS, ColumnFilter, filter_columns
from ingestion.core.deduplicator import Deduplicator, remove_duplicates
from ingestion.core.identifier import assign_ids

__all__ = [
    "IGNORED_COLUMNS",
    "ColumnFilter",
    "Deduplicator",
    "assign_ids",
    "filter_columns",
    "remove_duplicates",
]
