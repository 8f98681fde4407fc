# tests/unit/cli/test_cli_formatters.py
"""Tests for progress and benchmark rendering."""

from __future__ import annotations

import io
import json

import pytest
from rich.console import Console

from esrollup.cli_formatters import (
    ConsoleProgressRenderer,
    LogProgressRenderer,
    build_benchmark_table,
    format_duration,
    progress_rows,
)
from esrollup.contracts.types import IndexTask, ProgressRecord, ProgressReport, SinkStats
from esrollup.core.logging import configure_logging


def _report(**overrides: object) -> ProgressReport:
    values: dict = {
        "elapsed_seconds": 4.0,
        "received": 2000,
        "running_workers": 2,
        "records": (
            ProgressRecord("logs-2016.01.02", "logs-2016.01", 800),
            ProgressRecord("logs-2016.01.01", "logs-2016.01", 1200, done=True),
        ),
        "sink_stats": SinkStats(submitted=2000, committed=1, indexed=1000, failed=3),
        "pending": (IndexTask("logs-2016.01.03", "logs-2016.01", 3),),
    }
    values.update(overrides)
    return ProgressReport(**values)


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, force_terminal=False, color_system=None), buffer


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0.25, "250ms"), (12.345, "12.35s"), (185, "3m05s"), (3720, "1h02m")],
    )
    def test_formats(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected


class TestProgressRows:
    def test_pending_tasks_appear_as_placeholder_rows(self) -> None:
        rows = progress_rows(_report())

        assert [row.source_name for row in rows] == ["logs-2016.01.01", "logs-2016.01.02", "logs-2016.01.03"]
        assert [row.status.value for row in rows] == ["COMPLETE", "IN PROGRESS", "PENDING"]


class TestConsoleProgressRenderer:
    def test_renders_header_and_table(self) -> None:
        console, buffer = _console()

        ConsoleProgressRenderer(console, clear=False).render(_report())

        output = buffer.getvalue()
        assert "Elapsed: 4.00s" in output
        assert "2,000 documents read by 2 workers (avg 500/sec)" in output
        assert "1,000 documents committed to Elastic (3 failed)" in output
        assert "logs-2016.01.03" in output
        assert "IN PROGRESS" in output
        assert "1,200" in output

    def test_singular_worker(self) -> None:
        console, buffer = _console()
        ConsoleProgressRenderer(console, clear=False).render(_report(running_workers=1))
        assert "by 1 worker (" in buffer.getvalue()

    def test_failed_status_shown(self) -> None:
        console, buffer = _console()
        records = (ProgressRecord("a", "x", 250, done=True, failed=True),)
        ConsoleProgressRenderer(console, clear=False).render(_report(records=records, pending=()))
        assert "FAILED" in buffer.getvalue()


class TestLogProgressRenderer:
    def test_emits_progress_event_with_status_counts(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        try:
            LogProgressRenderer().render(_report())
        finally:
            configure_logging()

        event = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert event["event"] == "rollup_progress"
        assert event["received"] == 2000
        assert event["statuses"] == {"PENDING": 1, "IN PROGRESS": 1, "COMPLETE": 1, "FAILED": 0}


class TestBenchmarkTable:
    def test_average_only_once_all_iterations_ran(self) -> None:
        console, buffer = _console()
        results = {(1, 100): [2.0, 4.0], (2, 100): [1.5]}

        console.print(build_benchmark_table(results, iterations=2))

        lines = buffer.getvalue().splitlines()
        complete = next(line for line in lines if "3.00s" in line)
        assert "2.00s" in complete and "4.00s" in complete
        partial = next(line for line in lines if "1.50s" in line)
        assert "s" not in partial.replace("1.50s", "")
