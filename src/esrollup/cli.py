# src/esrollup/cli.py
"""esrollup Command Line Interface.

Entry point for the esrollup CLI tool.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, NoReturn

import typer
from elasticsearch import ApiError, TransportError
from rich.console import Console

from esrollup import __version__
from esrollup.cli_formatters import ConsoleProgressRenderer, LogProgressRenderer, build_benchmark_table, format_duration
from esrollup.contracts.errors import ConfigurationError
from esrollup.contracts.protocols import ProgressRenderer
from esrollup.contracts.types import RollupResult
from esrollup.core.config import RollupSettings, resolve_settings
from esrollup.core.logging import configure_logging
from esrollup.engine.benchmark import BenchmarkResults, run_benchmark
from esrollup.runner import run_rollup

__all__ = ["app"]

app = typer.Typer(
    name="esrollup",
    help="Roll up time-partitioned Elasticsearch indexes into consolidated indexes.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"esrollup version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Log level: DEBUG, INFO, WARNING, ERROR.",
    ),
    log_format: Literal["console", "json"] = typer.Option(
        "console",
        "--log-format",
        help="Log output format on stderr.",
    ),
) -> None:
    """esrollup: consolidate dated Elasticsearch indexes."""
    if not no_dotenv:
        _load_dotenv(env_file.expanduser() if env_file is not None else None)
    configure_logging(json_output=log_format == "json", level=log_level)


def _resolve_or_exit(settings_file: str | None, overrides: dict[str, Any]) -> RollupSettings:
    config_path = Path(settings_file).expanduser() if settings_file else None
    try:
        return resolve_settings(config_path, overrides)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings_file}", err=True)
        raise typer.Exit(1) from None
    except ConfigurationError as e:
        _exit_with_problems(e)


def _exit_with_problems(error: ConfigurationError) -> NoReturn:
    typer.echo("Configuration errors:", err=True)
    for problem in error.problems:
        typer.echo(f"  - {problem}", err=True)
    raise typer.Exit(1) from None


def _echo_summary(result: RollupResult, output_format: str) -> None:
    stats = result.sink_stats
    if output_format == "json":
        typer.echo(
            json.dumps(
                {
                    "event": "rollup_complete",
                    "status": "partial" if result.partial else "completed",
                    "received": result.received,
                    "indexed": stats.indexed,
                    "failed_documents": stats.failed,
                    "committed_batches": stats.committed,
                    "elapsed_seconds": round(result.elapsed_seconds, 3),
                    "failed_indexes": result.failures,
                }
            )
        )
        return

    symbol = "⚠" if result.partial else "✓"
    status = "PARTIAL" if result.partial else "COMPLETE"
    typer.echo(
        f"\n{symbol} Rollup {status}: {result.received:,} documents read | "
        f"✓{stats.indexed:,} committed | ✗{stats.failed:,} failed | "
        f"{format_duration(result.elapsed_seconds)} total"
    )
    for source, error in sorted(result.failures.items()):
        typer.echo(f"  ✗ {source}: {error}", err=True)


# Options shared by run and benchmark
_SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="Path to settings YAML file.")
_INFILTER_OPTION = typer.Option(None, "--infilter", help="A regex to match against index names.")
_INPATTERN_OPTION = typer.Option(
    None, "--inpattern", help="strptime pattern that decodes a matched index name to a date, e.g. 'logstash-%Y.%m.%d'."
)
_OUTPATTERN_OPTION = typer.Option(
    None, "--outpattern", help="strftime pattern for the destination index name, e.g. 'logstash-%Y.%m'."
)
_INHOST_OPTION = typer.Option(None, "--inhost", help="Elasticsearch host to read indexes from [default: http://localhost:9200].")
_OUTHOST_OPTION = typer.Option(None, "--outhost", help="Elasticsearch host to write indexes to. Defaults to --inhost.")


@app.command()
def run(
    settings: str | None = _SETTINGS_OPTION,
    infilter: str | None = _INFILTER_OPTION,
    inpattern: str | None = _INPATTERN_OPTION,
    outpattern: str | None = _OUTPATTERN_OPTION,
    inhost: str | None = _INHOST_OPTION,
    outhost: str | None = _OUTHOST_OPTION,
    threads: int | None = typer.Option(
        None, "--threads", help="Number of index readers running at once; each reads one index at a time [default: 3]."
    ),
    buffersize: int | None = typer.Option(None, "--buffersize", help="Documents per scroll page and per bulk request [default: 1000]."),
    silent: bool = typer.Option(False, "--silent", help="Do not draw the progress table."),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (progress table) or 'json' (structured events).",
    ),
) -> None:
    """Roll up every matching index into its destination index.

    Exits 0 once all indexes are done, even if some of them failed to read;
    failed indexes are listed in the summary.
    """
    config = _resolve_or_exit(
        settings,
        {
            "input_filter": infilter,
            "input_pattern": inpattern,
            "output_pattern": outpattern,
            "input_host": inhost,
            "output_host": outhost,
            "threads": threads,
            "buffer_size": buffersize,
        },
    )

    renderer: ProgressRenderer | None
    if output_format == "json":
        renderer = LogProgressRenderer()
    elif silent:
        renderer = None
    else:
        renderer = ConsoleProgressRenderer(Console())

    try:
        result = run_rollup(config, renderer=renderer)
    except ConfigurationError as e:
        _exit_with_problems(e)
    except (ApiError, TransportError) as e:
        typer.echo(f"Error talking to Elasticsearch: {e}", err=True)
        raise typer.Exit(1) from None

    _echo_summary(result, output_format)


@app.command()
def benchmark(
    settings: str | None = _SETTINGS_OPTION,
    infilter: str | None = _INFILTER_OPTION,
    inpattern: str | None = _INPATTERN_OPTION,
    outpattern: str | None = _OUTPATTERN_OPTION,
    inhost: str | None = _INHOST_OPTION,
    outhost: str | None = _OUTHOST_OPTION,
    iterations: int | None = typer.Option(None, "--iterations", help="Runs per combination [default: 3]."),
    thread_options: list[int] | None = typer.Option(
        None, "--thread-option", help="Thread count to try (repeatable) [default: 1 2 3 4 5]."
    ),
    buffer_options: list[int] | None = typer.Option(
        None, "--buffer-option", help="Buffer size to try (repeatable) [default: 100 1000 2000 5000 10000]."
    ),
) -> None:
    """Time full rollups across a grid of thread counts and buffer sizes."""
    config = _resolve_or_exit(
        settings,
        {
            "input_filter": infilter,
            "input_pattern": inpattern,
            "output_pattern": outpattern,
            "input_host": inhost,
            "output_host": outhost,
            "benchmark": {
                "iterations": iterations,
                "thread_options": tuple(thread_options) if thread_options else None,
                "buffer_options": tuple(buffer_options) if buffer_options else None,
            },
        },
    )

    console = Console()

    def _show(results: BenchmarkResults) -> None:
        console.clear()
        console.print("Running benchmark...")
        console.print(build_benchmark_table(results, config.benchmark.iterations))

    try:
        run_benchmark(config, run_rollup, on_progress=_show)
    except ConfigurationError as e:
        _exit_with_problems(e)
    except (ApiError, TransportError) as e:
        typer.echo(f"Error talking to Elasticsearch: {e}", err=True)
        raise typer.Exit(1) from None


if __name__ == "__main__":
    app()
