"""Analyzer settings: frozen pydantic sections read from ``config.yaml``.

Missing sections fall back to defaults and ``CRASH_ANALYZER_*``
environment variables override individual fields.
"""

from __future__ import annotations

import codecs
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ingestion.core.column_filter import IGNORED_COLUMNS


# ── Pydantic settings models ───────────────────────────────────────


class SystemSettings(BaseModel):
    """Top-level system settings."""

    model_config = ConfigDict(frozen=True)

    project_name: str = "Reset Crash Analyzer"
    version: str = "1.0.0"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = v.upper()
        if upper not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got '{v}'")
        return upper


class IngestionSettings(BaseModel):
    """CSV ingestion and column filtering."""

    model_config = ConfigDict(frozen=True)

    ignored_columns: List[str] = Field(
        default_factory=lambda: sorted(IGNORED_COLUMNS),
    )
    encoding: str = "utf-8"


class TicketingSettings(BaseModel):
    """Issue-tracker collaborator settings."""

    model_config = ConfigDict(frozen=True)

    project_key: str = "ICONSD"
    failure_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    latency_seconds: float = Field(default=0.0, ge=0.0)
    random_seed: Optional[int] = None


class LogExportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    export_directory: str = "exports"


# ── Top-level config ───────────────────────────────────────────────


class SystemConfig(BaseModel):
    """Complete application configuration."""

    model_config = ConfigDict(frozen=True)

    system: SystemSettings = Field(default_factory=SystemSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    ticketing: TicketingSettings = Field(default_factory=TicketingSettings)
    logs: LogExportSettings = Field(default_factory=LogExportSettings)


# ── ConfigManager ──────────────────────────────────────────────────

# Environment variable → (section, field, parser).
_ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "CRASH_ANALYZER_LOG_LEVEL": ("system", "log_level", str),
    "CRASH_ANALYZER_PROJECT_KEY": ("ticketing", "project_key", str),
    "CRASH_ANALYZER_FAILURE_RATE": ("ticketing", "failure_rate", float),
    "CRASH_ANALYZER_EXPORT_DIR": ("logs", "export_directory", str),
}


class ConfigManager:
    """Builds the :class:`SystemConfig` from ``config.yaml`` plus env vars."""

    @staticmethod
    def load(config_path: str = "config.yaml") -> SystemConfig:
        """Read *config_path* (defaults when absent) and apply env overrides.

        Raises:
            yaml.YAMLError: If the file is not valid YAML.
            ValueError: If the YAML document is not a mapping, or an
                environment override cannot be parsed.
            pydantic.ValidationError: If a value is out of range.
        """
        path = Path(config_path)
        raw: Any = {}
        if path.exists():
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(
                f"{path.name}: expected a mapping of sections, got {type(raw).__name__}"
            )
        return ConfigManager.merge_env_vars(SystemConfig.model_validate(raw))

    @staticmethod
    def validate(config: SystemConfig) -> List[str]:
        """Problems that pass schema validation but would break a run.

        An empty list means the config is usable.
        """
        issues: List[str] = []

        if not config.ticketing.project_key.strip():
            issues.append("ticketing.project_key must not be empty")

        if any(not col.strip() for col in config.ingestion.ignored_columns):
            issues.append("ingestion.ignored_columns contains an empty name")

        if "Crash-ID" in config.ingestion.ignored_columns:
            issues.append("ingestion.ignored_columns must not drop 'Crash-ID'")

        try:
            codecs.lookup(config.ingestion.encoding)
        except LookupError:
            issues.append(f"ingestion.encoding '{config.ingestion.encoding}' is unknown")

        return issues

    @staticmethod
    def merge_env_vars(config: SystemConfig) -> SystemConfig:
        """Return *config* with ``CRASH_ANALYZER_*`` overrides applied.

        The input is returned unchanged when no override is set.
        """
        updates: Dict[str, Dict[str, Any]] = {}
        for env_key, (section, field, parse) in _ENV_OVERRIDES.items():
            value = os.environ.get(env_key)
            if value is None:
                continue
            try:
                updates.setdefault(section, {})[field] = parse(value)
            except ValueError as exc:
                raise ValueError(f"{env_key}={value!r}: {exc}") from exc

        if not updates:
            return config

        sections = {
            name: {**getattr(config, name).model_dump(), **fields}
            for name, fields in updates.items()
        }
        return SystemConfig.model_validate({**config.model_dump(), **sections})

    @staticmethod
    def get_default_config() -> SystemConfig:
        return SystemConfig()

    @staticmethod
    def save(config: SystemConfig, path: str) -> None:
        """Write *config* to *path* as YAML, creating parent directories."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            yaml.safe_dump(config.model_dump(), sort_keys=False),
            encoding="utf-8",
        )
