"""csv_reader.py — Crash-report CSV parsing collaborator.

Reads an uploaded crash report into the ordered list of string-keyed rows
the ingestion pipeline consumes:

  * first row is the header
  * blank lines are skipped
  * every cell is read as text; empty cells stay ``""``
  * every row must have exactly as many fields as the header

Any read or parse failure is reported as a single :class:`ParseError`
message so the caller can show it in place of the row list.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import IO, Optional, Union

import pandas as pd

from ingestion.schema import ParsedTable, ParseError
from integration.logger import get_logger

logger = get_logger("ingestion.csv_reader")

CsvSource = Union[str, Path, IO[str], IO[bytes]]

EXAMPLE_CSV = (
    "Crash-ID,VIN,Service_Reason,reset_reason,ecu_sw_long_name,timestamp_at_site,"
    "speed,Kilometer,update_time\n"
    "CR-1001,WVWZZZ1JZ3W386752,NavigationService,"
    "\"recovery event: service: [NavigationService] exit_code: 9 result: restarted\","
    "HMI_SW_24.3.1,2024-03-01T08:12:44Z,52,18234,2024-03-01T09:00:00Z\n"
    "CR-1001,WVWZZZ1JZ3W386752,NavigationService,"
    "\"recovery event: service: [NavigationService] exit_code: 9 result: restarted\","
    "HMI_SW_24.3.1,2024-03-01T08:12:44Z,52,18234,2024-03-01T09:05:00Z\n"
    "N/A,WVWZZZ1JZ3W386752,MediaService,"
    "\"recovery event: service: [MediaService] exit_code: 11 result: reset\","
    "HMI_SW_24.3.1,2024-03-02T17:40:02Z,0,18301,2024-03-02T18:00:00Z\n"
    ",WVWZZZ1JZ3W386752,MediaService,"
    "\"recovery event: service: [MediaService] exit_code: 11 result: reset\","
    "HMI_SW_24.3.1,2024-03-02T17:40:02Z,0,18301,2024-03-02T18:10:00Z\n"
    ",WAUZZZ8V0KA123456,PhoneService,"
    "\"watchdog timeout service: [PhoneService] result: reset\","
    "HMI_SW_24.2.0,2024-03-03T06:01:13Z,97,40211,2024-03-03T07:00:00Z\n"
)


def _display_name(source: CsvSource, file_name: Optional[str]) -> str:
    if file_name:
        return file_name
    if isinstance(source, (str, Path)):
        return Path(source).name
    return getattr(source, "name", "") or "upload.csv"


def read_crash_csv(
    source: CsvSource,
    file_name: Optional[str] = None,
    encoding: str = "utf-8",
) -> ParsedTable:
    """Parse a crash-report CSV into a :class:`ParsedTable`.

    The header is read as an ordinary row so that a data row wider than
    the header is rejected instead of being turned into a row index.

    Args:
        source: Path or open file object.
        file_name: Name to report for the upload (defaults to the path's
            file name).
        encoding: Text encoding of *source*.

    Returns:
        The parsed rows in file order.

    Raises:
        ParseError: If the file cannot be read, is not valid CSV, or a
            row has more or fewer fields than the header.
    """
    name = _display_name(source, file_name)
    try:
        frame = pd.read_csv(
            source,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding=encoding,
        )
    except pd.errors.EmptyDataError as exc:
        raise ParseError(f"Error parsing CSV: {exc}", file_name=name) from exc
    except pd.errors.ParserError as exc:
        raise ParseError(f"Error parsing CSV: {exc}", file_name=name) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Failed to read file: {exc}", file_name=name) from exc

    # Only cells past the end of a row are NaN; empty cells stay "".
    header = frame.iloc[0]
    if header.isna().any():
        raise ParseError(
            f"Error parsing CSV: Too many fields: expected {int(header.notna().sum())} "
            f"fields but parsed {len(header)}",
            file_name=name,
        )
    body = frame.iloc[1:]
    short = body.isna().any(axis=1).to_numpy()
    if short.any():
        position = int(short.argmax())
        parsed = int(body.iloc[position].notna().sum())
        raise ParseError(
            f"Error parsing CSV: Too few fields: expected {len(header)} fields "
            f"but parsed {parsed} (row {position + 1})",
            file_name=name,
        )

    columns = [str(cell) for cell in header]
    rows = [dict(zip(columns, values)) for values in body.itertuples(index=False, name=None)]

    logger.debug(
        "csv_parsed",
        file_name=name,
        rows=len(rows),
        columns=len(columns),
    )
    return ParsedTable(rows=rows, file_name=name)


def read_crash_csv_text(text: str, file_name: str = "upload.csv") -> ParsedTable:
    """Parse CSV content already held in memory."""
    return read_crash_csv(io.StringIO(text), file_name=file_name)
