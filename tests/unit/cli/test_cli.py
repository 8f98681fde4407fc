# tests/unit/cli/test_cli.py
"""Tests for the esrollup CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from elasticsearch import ConnectionError as ESConnectionError
from typer.testing import CliRunner

from esrollup.cli import app
from esrollup.contracts.errors import ConfigurationError
from esrollup.contracts.types import RollupResult, SinkStats
from esrollup.core.config import RollupSettings

runner = CliRunner()

FLAGS = ["--infilter", "^logs-", "--inpattern", "logs-%Y.%m.%d", "--outpattern", "logs-%Y.%m"]


def _result(**overrides: object) -> RollupResult:
    values: dict = {
        "received": 1200,
        "elapsed_seconds": 3.5,
        "sink_stats": SinkStats(submitted=1200, committed=2, indexed=1190, failed=10),
    }
    values.update(overrides)
    return RollupResult(**values)


def _summary_line(output: str) -> dict:
    for line in reversed(output.splitlines()):
        if line.startswith("{"):
            data = json.loads(line)
            if "status" in data:
                return data
    raise AssertionError(f"no JSON summary in output:\n{output}")


class TestCLIBasics:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "esrollup version" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "benchmark" in result.output

    def test_missing_env_file_exits(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--env-file", str(tmp_path / "nope.env"), "run", *FLAGS])
        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestRunCommand:
    def test_blank_infilter_is_a_configuration_error(self) -> None:
        with patch("esrollup.cli.run_rollup") as run_rollup:
            result = runner.invoke(app, ["--no-dotenv", "run", "--inpattern", "a-%Y", "--outpattern", "b-%Y"])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output
        assert "input_filter" in result.output
        run_rollup.assert_not_called()

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "run", "--settings", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_flags_become_settings(self) -> None:
        with patch("esrollup.cli.run_rollup", return_value=_result()) as run_rollup:
            result = runner.invoke(
                app,
                ["--no-dotenv", "run", *FLAGS, "--inhost", "http://old:9200", "--threads", "5", "--buffersize", "250", "--silent"],
            )

        assert result.exit_code == 0, result.output
        settings: RollupSettings = run_rollup.call_args.args[0]
        assert settings.input_filter == "^logs-"
        assert settings.input_host == settings.output_host == "http://old:9200"
        assert (settings.threads, settings.buffer_size) == (5, 250)
        assert run_rollup.call_args.kwargs["renderer"] is None

    def test_settings_file_and_flags_combine(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("input_filter: '^a-'\ninput_pattern: 'a-%Y.%m.%d'\noutput_pattern: 'a-%Y'\nthreads: 2\n")

        with patch("esrollup.cli.run_rollup", return_value=_result()) as run_rollup:
            result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "--outhost", "http://new:9200", "--silent"])

        assert result.exit_code == 0, result.output
        settings: RollupSettings = run_rollup.call_args.args[0]
        assert settings.threads == 2
        assert settings.output_host == "http://new:9200"

    def test_console_summary(self) -> None:
        with patch("esrollup.cli.run_rollup", return_value=_result()):
            result = runner.invoke(app, ["--no-dotenv", "run", *FLAGS, "--silent"])

        assert result.exit_code == 0
        assert "Rollup COMPLETE" in result.output
        assert "1,200 documents read" in result.output
        assert "1,190 committed" in result.output

    def test_partial_run_lists_failures_and_still_exits_zero(self) -> None:
        partial = _result(failures={"logs-2016.01.02": "logs-2016.01.02: scroll context lost"})
        with patch("esrollup.cli.run_rollup", return_value=partial):
            result = runner.invoke(app, ["--no-dotenv", "run", *FLAGS, "--silent"])

        assert result.exit_code == 0
        assert "Rollup PARTIAL" in result.output
        assert "scroll context lost" in result.output

    def test_json_format_uses_log_renderer_and_json_summary(self) -> None:
        with patch("esrollup.cli.run_rollup", return_value=_result()) as run_rollup:
            result = runner.invoke(app, ["--no-dotenv", "run", *FLAGS, "--format", "json"])

        assert result.exit_code == 0, result.output
        assert type(run_rollup.call_args.kwargs["renderer"]).__name__ == "LogProgressRenderer"
        summary = _summary_line(result.output)
        assert summary["status"] == "completed"
        assert summary["received"] == 1200
        assert summary["failed_documents"] == 10

    def test_cluster_error_exits_one(self) -> None:
        with patch("esrollup.cli.run_rollup", side_effect=ESConnectionError("refused")):
            result = runner.invoke(app, ["--no-dotenv", "run", *FLAGS, "--silent"])

        assert result.exit_code == 1
        assert "Error talking to Elasticsearch" in result.output

    def test_target_rejection_reported_as_configuration_error(self) -> None:
        rejection = ConfigurationError("bad target", problems=["preserve_types: target cluster runs 8.11.0"])
        with patch("esrollup.cli.run_rollup", side_effect=rejection):
            result = runner.invoke(app, ["--no-dotenv", "run", *FLAGS, "--silent"])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output
        assert "preserve_types: target cluster runs 8.11.0" in result.output


class TestBenchmarkCommand:
    def test_runs_grid_from_flags(self) -> None:
        execute = MagicMock(return_value=_result())
        with patch("esrollup.cli.run_rollup", execute):
            result = runner.invoke(
                app,
                [
                    "--no-dotenv",
                    "benchmark",
                    *FLAGS,
                    "--iterations",
                    "2",
                    "--thread-option",
                    "1",
                    "--thread-option",
                    "4",
                    "--buffer-option",
                    "100",
                ],
            )

        assert result.exit_code == 0, result.output
        assert [(call.args[0].threads, call.args[0].buffer_size) for call in execute.call_args_list] == [
            (1, 100),
            (1, 100),
            (4, 100),
            (4, 100),
        ]
        assert "Benchmark" in result.output
