# src/esrollup/engine/benchmark.py
"""Throughput benchmark over a (threads, buffer_size) grid.

Each combination is run `iterations` times end to end. Runs reuse the
same clusters, which is safe because the sink indexes by document id.
"""

from __future__ import annotations

from collections.abc import Callable

from esrollup.contracts.types import RollupResult
from esrollup.core.config import RollupSettings
from esrollup.core.logging import get_logger
from esrollup.engine.clock import DEFAULT_CLOCK, Clock

logger = get_logger(__name__)

# (threads, buffer_size) -> wall-clock seconds per completed iteration
BenchmarkResults = dict[tuple[int, int], list[float]]


def average_durations(results: BenchmarkResults) -> dict[tuple[int, int], float]:
    """Mean duration of every combination that has at least one run."""
    return {key: sum(durations) / len(durations) for key, durations in results.items() if durations}


def run_benchmark(
    base: RollupSettings,
    execute: Callable[[RollupSettings], RollupResult],
    *,
    on_progress: Callable[[BenchmarkResults], None] | None = None,
    clock: Clock | None = None,
) -> BenchmarkResults:
    """Run `execute` for every grid point in base.benchmark.

    Args:
        base: Settings every run starts from; threads and buffer_size are overridden
        execute: Runs one rollup (normally runner.run_rollup with a silent renderer)
        on_progress: Called with the partial results before the first run and
            after every run
        clock: Time source for durations

    Returns:
        Durations per (threads, buffer_size), in run order.
    """
    clock = clock or DEFAULT_CLOCK
    grid = [(threads, buffers) for threads in base.benchmark.thread_options for buffers in base.benchmark.buffer_options]
    results: BenchmarkResults = {key: [] for key in grid}
    if on_progress is not None:
        on_progress(results)

    for threads, buffers in grid:
        settings = base.model_copy(update={"threads": threads, "buffer_size": buffers})
        for iteration in range(1, base.benchmark.iterations + 1):
            start = clock.monotonic()
            result = execute(settings)
            elapsed = clock.monotonic() - start
            results[(threads, buffers)].append(elapsed)
            logger.info(
                "benchmark_iteration",
                threads=threads,
                buffer_size=buffers,
                iteration=iteration,
                seconds=round(elapsed, 3),
                received=result.received,
            )
            if on_progress is not None:
                on_progress(results)
    return results
