# src/esrollup/cli_formatters.py
"""Progress and benchmark renderers for CLI output.

ConsoleProgressRenderer redraws a rich table every tick for interactive
use. LogProgressRenderer emits one structured log event per tick instead,
for --format json and for silent/benchmark runs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from rich.console import Console
from rich.table import Table

from esrollup.contracts.enums import ProgressStatus
from esrollup.contracts.types import ProgressRecord, ProgressReport
from esrollup.core.logging import get_logger

logger = get_logger(__name__)

_STATUS_STYLES: dict[ProgressStatus, str] = {
    ProgressStatus.PENDING: "dim",
    ProgressStatus.IN_PROGRESS: "yellow",
    ProgressStatus.COMPLETE: "green",
    ProgressStatus.FAILED: "red bold",
}


def format_duration(seconds: float) -> str:
    """Compact human duration: 850ms, 12.34s, 3m05s, 1h02m."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"


def progress_rows(report: ProgressReport) -> list[ProgressRecord]:
    """Registered records plus placeholder rows for not-yet-admitted tasks, by source name."""
    rows = list(report.records)
    rows.extend(ProgressRecord(source_name=task.source_name, destination_name=task.dest_name) for task in report.pending)
    return sorted(rows, key=lambda record: record.source_name)


def build_progress_table(report: ProgressReport) -> Table:
    table = Table(show_lines=False)
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("Records", justify="right")
    for record in progress_rows(report):
        status = record.status
        table.add_row(
            f"[{_STATUS_STYLES[status]}]{status.value}[/]",
            record.source_name,
            record.destination_name,
            f"{record.read_count:,}",
        )
    return table


class ConsoleProgressRenderer:
    """Redraws elapsed time, throughput, sink counters and the per-index table."""

    def __init__(self, console: Console | None = None, *, clear: bool = True) -> None:
        self._console = console or Console()
        self._clear = clear

    def render(self, report: ProgressReport) -> None:
        if self._clear:
            self._console.clear()
        worker_word = "worker" if report.running_workers == 1 else "workers"
        stats = report.sink_stats
        self._console.print(f"Elapsed: {format_duration(report.elapsed_seconds)}")
        self._console.print(
            f"{report.received:,} documents read by {report.running_workers} {worker_word} "
            f"(avg {report.documents_per_second:,.0f}/sec)"
        )
        self._console.print(f"{stats.indexed:,} documents committed to Elastic ({stats.failed:,} failed)")
        self._console.print(build_progress_table(report))


class LogProgressRenderer:
    """Emits a `rollup_progress` log event per tick."""

    def render(self, report: ProgressReport) -> None:
        counts: dict[str, int] = {status.value: 0 for status in ProgressStatus}
        for record in progress_rows(report):
            counts[record.status.value] += 1
        logger.info(
            "rollup_progress",
            elapsed_seconds=round(report.elapsed_seconds, 3),
            received=report.received,
            running_workers=report.running_workers,
            indexed=report.sink_stats.indexed,
            failed=report.sink_stats.failed,
            statuses=counts,
        )


def build_benchmark_table(
    results: Mapping[tuple[int, int], Sequence[float]],
    iterations: int,
) -> Table:
    """Table of (threads, buffers) -> per-iteration durations and their mean.

    The average column stays blank until a combination has all its iterations.
    """
    table = Table(title="Benchmark")
    table.add_column("Threads", justify="right")
    table.add_column("Buffers", justify="right")
    table.add_column("Average", justify="right")
    for i in range(1, iterations + 1):
        table.add_column(str(i), justify="right")

    for (threads, buffers), durations in sorted(results.items()):
        average = format_duration(sum(durations) / len(durations)) if len(durations) == iterations else ""
        cells = [format_duration(d) for d in durations]
        cells.extend("" for _ in range(iterations - len(durations)))
        table.add_row(str(threads), str(buffers), average, *cells)
    return table
