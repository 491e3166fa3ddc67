"""Render canonical crash records as issue-tracker tickets via Jinja2."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from ticketing.schema import FormatError, FormattedIssue

_TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
_DESCRIPTION_TEMPLATE = "issue_description.txt.j2"

UNKNOWN_SERVICE = "Unknown Service"
UNKNOWN_VIN = "Unknown VIN"
MISSING_VALUE = "N/A"
NO_RESET_REASON = "No reset reason provided."
NO_ERROR_INFO = "No additional error information."


def build_error_info(selected_logs: Optional[Iterable[str]]) -> Optional[str]:
    """Turn log lines picked for a ticket into an ``error_info`` override.

    Returns ``None`` when nothing was selected, so the record's own
    ``error_info`` applies.
    """
    lines = list(selected_logs or [])
    if not lines:
        return None
    return "[Pre-analysis]:\n" + "\n".join(lines)


class IssueFormatter:
    """Project a record into a ticket ``summary`` / ``description`` pair.

    Args:
        templates_dir: Directory holding ``issue_description.txt.j2``.
    """

    def __init__(self, templates_dir: Optional[str] = None) -> None:
        self.templates_dir = templates_dir or _TEMPLATES_DIR
        self._env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape([]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def format(
        self,
        record: Mapping[str, Any],
        occurrences: Optional[int] = None,
        error_info: Optional[str] = None,
    ) -> FormattedIssue:
        """Build the issue for *record*.

        Args:
            record: Canonical record.
            occurrences: UI override for the occurrence count.
            error_info: UI override for the error-information section
                (see :func:`build_error_info`).

        Raises:
            FormatError: If *record* is not a mapping or the template is
                missing.
        """
        if not isinstance(record, Mapping):
            raise FormatError(
                f"Cannot format issue from {type(record).__name__}; expected a mapping"
            )

        service = record.get("Service_Reason") or UNKNOWN_SERVICE
        vin = record.get("VIN") or record.get("vin") or UNKNOWN_VIN
        crash_id = record.get("Crash-ID") or MISSING_VALUE

        if occurrences is None:
            occurrences = record.get("occurrences")
        if error_info is None:
            error_info = record.get("error_info")

        summary = f"Crash: {service} reset on VIN {vin} (ID: {crash_id})"

        try:
            template = self._env.get_template(_DESCRIPTION_TEMPLATE)
        except TemplateNotFound as exc:
            raise FormatError(
                f"Template not found: {os.path.join(self.templates_dir, _DESCRIPTION_TEMPLATE)}"
            ) from exc

        description = template.render(
            service=service,
            crash_id=crash_id,
            vin=vin,
            occurrences=occurrences or 1,
            sw_version=record.get("ecu_sw_long_name") or MISSING_VALUE,
            timestamp=record.get("timestamp_at_site") or MISSING_VALUE,
            reset_reason=record.get("reset_reason") or NO_RESET_REASON,
            error_info=error_info or NO_ERROR_INFO,
        ).strip()

        return FormattedIssue(summary=summary, description=description)


_default_formatter: Optional[IssueFormatter] = None


def format_issue(
    record: Mapping[str, Any],
    occurrences: Optional[int] = None,
    error_info: Optional[str] = None,
) -> FormattedIssue:
    """Format *record* with a shared :class:`IssueFormatter`."""
    global _default_formatter  # noqa: PLW0603
    if _default_formatter is None:
        _default_formatter = IssueFormatter()
    return _default_formatter.format(record, occurrences=occurrences, error_info=error_info)
