"""Tests for integration.config_manager — YAML + env var config loading."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from ingestion.core.column_filter import IGNORED_COLUMNS
from integration.config_manager import (
    ConfigManager,
    IngestionSettings,
    SystemConfig,
    SystemSettings,
    TicketingSettings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CRASH_ANALYZER_LOG_LEVEL",
        "CRASH_ANALYZER_PROJECT_KEY",
        "CRASH_ANALYZER_FAILURE_RATE",
        "CRASH_ANALYZER_EXPORT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


# ── SystemConfig defaults ──────────────────────────────────────────


class TestSystemConfigDefaults:
    def test_default_instantiation(self) -> None:
        cfg = SystemConfig()
        assert cfg.system.log_level == "INFO"
        assert cfg.system.version == "1.0.0"
        assert cfg.system.project_name == "Reset Crash Analyzer"

    def test_default_ingestion(self) -> None:
        cfg = SystemConfig()
        assert set(cfg.ingestion.ignored_columns) == IGNORED_COLUMNS
        assert cfg.ingestion.encoding == "utf-8"

    def test_default_ticketing(self) -> None:
        cfg = SystemConfig()
        assert cfg.ticketing.project_key == "ICONSD"
        assert cfg.ticketing.failure_rate == 0.1
        assert cfg.ticketing.random_seed is None

    def test_default_export_dir(self) -> None:
        assert SystemConfig().logs.export_directory == "exports"

    def test_frozen(self) -> None:
        cfg = SystemConfig()
        with pytest.raises(ValidationError):
            cfg.system.log_level = "DEBUG"  # type: ignore[misc]


class TestFieldValidation:
    def test_log_level_normalised(self) -> None:
        assert SystemSettings(log_level="debug").log_level == "DEBUG"

    def test_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="log_level"):
            SystemSettings(log_level="LOUD")

    @pytest.mark.parametrize("rate", [-0.1, 1.1])
    def test_failure_rate_bounds(self, rate: float) -> None:
        with pytest.raises(ValidationError):
            TicketingSettings(failure_rate=rate)


# ── ConfigManager.load ─────────────────────────────────────────────


class TestLoad:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = ConfigManager.load(str(tmp_path / "absent.yaml"))
        assert cfg == SystemConfig()

    def test_partial_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            textwrap.dedent(
                """\
                ingestion:
                  ignored_columns: [speed]
                ticketing:
                  project_key: CRASH
                  random_seed: 5
                """
            ),
            encoding="utf-8",
        )
        cfg = ConfigManager.load(str(path))
        assert cfg.ingestion.ignored_columns == ["speed"]
        assert cfg.ticketing.project_key == "CRASH"
        assert cfg.ticketing.random_seed == 5
        assert cfg.system.log_level == "INFO"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert ConfigManager.load(str(path)) == SystemConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("system: [unclosed\n", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            ConfigManager.load(str(path))

    def test_non_mapping_document(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError, match="expected a mapping"):
            ConfigManager.load(str(path))


# ── env vars ───────────────────────────────────────────────────────


class TestEnvOverrides:
    def test_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CRASH_ANALYZER_LOG_LEVEL", "debug")
        monkeypatch.setenv("CRASH_ANALYZER_PROJECT_KEY", "VEH")
        monkeypatch.setenv("CRASH_ANALYZER_FAILURE_RATE", "0.5")
        monkeypatch.setenv("CRASH_ANALYZER_EXPORT_DIR", "out")

        cfg = ConfigManager.load(str(tmp_path / "absent.yaml"))
        assert cfg.system.log_level == "DEBUG"
        assert cfg.ticketing.project_key == "VEH"
        assert cfg.ticketing.failure_rate == 0.5
        assert cfg.logs.export_directory == "out"

    def test_env_overrides_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("ticketing:\n  project_key: FILE\n  random_seed: 2\n", encoding="utf-8")
        monkeypatch.setenv("CRASH_ANALYZER_PROJECT_KEY", "ENV")

        cfg = ConfigManager.load(str(path))
        assert cfg.ticketing.project_key == "ENV"
        assert cfg.ticketing.random_seed == 2

    def test_unparseable_failure_rate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRASH_ANALYZER_FAILURE_RATE", "often")
        with pytest.raises(ValueError, match="CRASH_ANALYZER_FAILURE_RATE"):
            ConfigManager.merge_env_vars(SystemConfig())

    def test_out_of_range_failure_rate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRASH_ANALYZER_FAILURE_RATE", "2")
        with pytest.raises(ValidationError):
            ConfigManager.merge_env_vars(SystemConfig())

    def test_no_env_returns_same_object(self) -> None:
        cfg = SystemConfig()
        assert ConfigManager.merge_env_vars(cfg) is cfg


# ── validate / save ────────────────────────────────────────────────


class TestValidate:
    def test_defaults_are_valid(self) -> None:
        assert ConfigManager.validate(ConfigManager.get_default_config()) == []

    def test_reports_issues(self) -> None:
        cfg = SystemConfig(
            ticketing=TicketingSettings(project_key="  "),
            ingestion=IngestionSettings(
                ignored_columns=["Crash-ID", " "], encoding="no-such-codec",
            ),
        )
        issues = ConfigManager.validate(cfg)
        assert len(issues) == 4
        assert any("project_key" in i for i in issues)
        assert any("Crash-ID" in i for i in issues)
        assert any("empty name" in i for i in issues)
        assert any("no-such-codec" in i for i in issues)


class TestSave:
    def test_round_trip(self, tmp_path: Path) -> None:
        cfg = SystemConfig(ticketing=TicketingSettings(project_key="CRASH"))
        path = tmp_path / "nested" / "config.yaml"
        ConfigManager.save(cfg, str(path))
        assert ConfigManager.load(str(path)) == cfg
