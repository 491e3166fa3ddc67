"""
File: schema.py
Purpose: Record aliases, result containers and error kinds for ingestion.
Dependencies: pydantic >=2.0

Crash-report rows have no fixed schema (columns vary per upload), so
records stay plain ``Dict[str, str]`` mappings.  Only the containers
that wrap them are typed models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


RawRecord = Mapping[str, Any]
NormalizedRecord = Dict[str, str]
CanonicalRecord = Dict[str, str]

CRASH_ID_FIELD = "Crash-ID"
RESET_REASON_FIELD = "reset_reason"
ID_FIELD = "id"


# ═══════════════════════════════════════════════════════════════
#  ENUMS
# ═══════════════════════════════════════════════════════════════


class IdentityStrategy(str, Enum):
    """Which identity rule produced a surviving record."""
    CRASH_ID = "crash_id"
    COMPOSITE = "composite"


# ═══════════════════════════════════════════════════════════════
#  VALUE TYPES
# ═══════════════════════════════════════════════════════════════


class CompositeKey(BaseModel):
    """Synthesized identity for rows without a usable Crash-ID.

    Example::

        CompositeKey(exit_code="9", service="Nav", vin="WVW123").key
        # "9-Nav-WVW123"
    """
    model_config = ConfigDict(frozen=True)

    exit_code: str = "NA"
    service: str = "UNKNOWN"
    vin: str = "NO_VIN"

    @property
    def key(self) -> str:
        return f"{self.exit_code}-{self.service}-{self.vin}"

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.exit_code, self.service, self.vin)


class ParsedTable(BaseModel):
    """Rows handed over by the CSV parsing collaborator."""
    model_config = ConfigDict(frozen=True)

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    file_name: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)


class DeduplicationResult(BaseModel):
    """Survivors of the two-phase identity resolution.

    ``records`` holds Crash-ID survivors first, then composite-key
    survivors, each group in first-seen order.
    """
    records: List[Dict[str, Any]] = Field(default_factory=list)
    crash_id_count: int = Field(default=0, ge=0)
    composite_count: int = Field(default=0, ge=0)
    duplicates_removed: int = Field(default=0, ge=0)
    vin_column: Optional[str] = None


class ProcessingResult(BaseModel):
    """Outcome of one complete pipeline run over an upload."""
    model_config = ConfigDict(frozen=True)

    records: Tuple[CanonicalRecord, ...] = ()
    file_name: str = ""
    input_rows: int = Field(default=0, ge=0)
    duplicates_removed: int = Field(default=0, ge=0)
    generation: int = Field(default=0, ge=0)

    @property
    def row_count(self) -> int:
        return len(self.records)


# ═══════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ═══════════════════════════════════════════════════════════════


class CrashAnalyzerError(Exception):
    """Base class for every error the analyzer raises."""


class ParseError(CrashAnalyzerError):
    """Raised when the CSV parsing collaborator reports malformed input."""

    def __init__(self, message: str, file_name: str = "") -> None:
        self.file_name = file_name
        super().__init__(message)


class ProcessingError(CrashAnalyzerError):
    """Raised by the orchestrator when an upload cannot be processed."""

    def __init__(self, message: str, file_name: str = "") -> None:
        self.file_name = file_name
        super().__init__(message)
