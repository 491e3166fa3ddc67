"""Tests for the Click CLI (main.py) via CliRunner."""

from __future__ import annotations

import json
import warnings
from importlib import metadata
from pathlib import Path

import pytest
from click.testing import CliRunner

from ingestion.csv_reader import EXAMPLE_CSV
from main import cli


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_yaml(tmp_path: Path) -> str:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "system:\n  log_level: WARNING\n"
        "ticketing:\n  project_key: ICONSD\n  random_seed: 11\n",
        encoding="utf-8",
    )
    return str(cfg)


@pytest.fixture()
def csv_path(tmp_path: Path) -> str:
    path = tmp_path / "crash_report.csv"
    path.write_text(EXAMPLE_CSV, encoding="utf-8")
    return str(path)


# ── Root group ─────────────────────────────────────────────────────


class TestCLIGroup:
    def test_help_flag(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "--help"])
        assert result.exit_code == 0
        assert "Reset Crash Analyzer" in result.output

    def test_no_subcommand_shows_help(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_version_option(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_invalid_config_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("system:\n  log_level: LOUD\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config", str(bad), "version"])
        assert result.exit_code == 2
        assert "Failed to load config" in result.output


# ── process ────────────────────────────────────────────────────────


class TestProcessCommand:
    def test_table_and_summary(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "process", csv_path])
        assert result.exit_code == 0
        assert "Found 3 unique crash events" in result.output
        assert "2 duplicates removed from 5 rows" in result.output

    def test_json_output(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "process", csv_path, "--json"])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [r["id"] for r in records] == ["CR-1001-0", "N/A-1", "no-id-2"]
        assert all("speed" not in r for r in records)

    def test_missing_file(self, runner: CliRunner, config_yaml: str, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "process", str(tmp_path / "missing.csv")],
        )
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_header_only_file(self, runner: CliRunner, config_yaml: str, tmp_path: Path) -> None:
        path = tmp_path / "empty_rows.csv"
        path.write_text("Crash-ID,VIN\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config", config_yaml, "process", str(path)])
        assert result.exit_code == 0
        assert "No crash events found" in result.output


# ── preview ────────────────────────────────────────────────────────


class TestPreviewCommand:
    def test_copy_format(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli,
            [
                "--config", config_yaml, "preview", csv_path,
                "--id", "CR-1001-0", "--occurrences", "3",
                "--log-line", "oom-kill: task_memcg", "--copy-format",
            ],
        )
        assert result.exit_code == 0
        assert (
            "Summary: Crash: NavigationService reset on VIN WVWZZZ1JZ3W386752 (ID: CR-1001)"
            in result.stdout
        )
        assert "| Occurrences | 3 |" in result.stdout
        assert "[Pre-analysis]:\noom-kill: task_memcg" in result.stdout

    def test_panel_for_all_rows(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "preview", csv_path, "--all"])
        assert result.exit_code == 0
        assert "h2. Crash Details" in result.output
        assert "PhoneService" in result.output

    def test_unknown_id(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "preview", csv_path, "--id", "nope-9"],
        )
        assert result.exit_code == 1
        assert "Unknown row id" in result.output

    def test_no_selection(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "preview", csv_path])
        assert result.exit_code == 1
        assert "--all" in result.output


# ── logs / similar ─────────────────────────────────────────────────


class TestLogsCommand:
    def test_exit_code_filter(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "logs", csv_path, "--id", "CR-1001-0"],
        )
        assert result.exit_code == 0
        assert "oom-kill: task_memcg" in result.output
        assert "Core dump generated" not in result.output

    def test_invalid_regex(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli,
            ["--config", config_yaml, "logs", csv_path, "--id", "CR-1001-0", "--regex", "("],
        )
        assert result.exit_code == 1
        assert "Invalid regex" in result.output


class TestSimilarCommand:
    def test_matching_ticket(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "similar", csv_path, "--id", "CR-1001-0"],
        )
        assert result.exit_code == 0
        assert "ICONSD-1234" in result.output

    def test_no_matches(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "similar", csv_path, "--id", "no-id-2"],
        )
        assert result.exit_code == 0
        assert "No similar tickets found" in result.output


# ── bulk actions ───────────────────────────────────────────────────


class TestCreateTicketsCommand:
    def test_all_succeed(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli,
            ["--config", config_yaml, "create-tickets", csv_path, "--all", "--failure-rate", "0"],
        )
        assert result.exit_code == 0
        assert "3 succeeded, 0 failed" in result.output

    def test_failures_exit_3(self, runner: CliRunner, config_yaml: str, csv_path: str) -> None:
        result = runner.invoke(
            cli,
            [
                "--config", config_yaml, "create-tickets", csv_path,
                "--id", "CR-1001-0", "--failure-rate", "1",
            ],
        )
        assert result.exit_code == 3
        assert "0 succeeded, 1 failed" in result.output


class TestExportLogsCommand:
    def test_writes_export_file(
        self, runner: CliRunner, config_yaml: str, csv_path: str, tmp_path: Path
    ) -> None:
        out_dir = tmp_path / "exports"
        result = runner.invoke(
            cli,
            ["--config", config_yaml, "export-logs", csv_path, "--all", "-o", str(out_dir)],
        )
        assert result.exit_code == 0
        files = list(out_dir.glob("crash_logs_export_*.txt"))
        assert len(files) == 1
        text = files[0].read_text(encoding="utf-8")
        assert text.startswith("Bulk Log Export for 3 items\n")
        assert "ITEM 3 | Crash-ID: N/A | Service: PhoneService" in text


# ── example-csv / validate / version ───────────────────────────────


class TestExampleCsvCommand:
    def test_writes_example(self, runner: CliRunner, config_yaml: str, tmp_path: Path) -> None:
        out = tmp_path / "nested" / "example.csv"
        result = runner.invoke(cli, ["--config", config_yaml, "example-csv", "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == EXAMPLE_CSV


class TestValidateCommand:
    def test_valid_config(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "validate", "--config", config_yaml],
        )
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_missing_file_uses_defaults(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "validate", "--config", "/no/such/file.yaml"],
        )
        assert result.exit_code == 0

    def test_semantic_issues(self, runner: CliRunner, config_yaml: str, tmp_path: Path) -> None:
        cfg = tmp_path / "issues.yaml"
        cfg.write_text(
            "ticketing:\n  project_key: ''\n"
            "ingestion:\n  ignored_columns: [Crash-ID]\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["--config", config_yaml, "validate", "--config", str(cfg)])
        assert result.exit_code == 1
        assert "project_key" in result.output
        assert "Crash-ID" in result.output


class TestVersionCommand:
    def test_version(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "version"])
        assert result.exit_code == 0
        assert "Reset Crash Analyzer" in result.output
        assert "1.0.0" in result.output

    def test_version_lists_installed_dependencies(
        self, runner: CliRunner, config_yaml: str
    ) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = runner.invoke(cli, ["--config", config_yaml, "version"])
        assert result.exit_code == 0
        assert f"click       : {metadata.version('click')}" in result.output
        assert f"pyyaml      : {metadata.version('PyYAML')}" in result.output
        assert not [w for w in caught if "__version__" in str(w.message)]
