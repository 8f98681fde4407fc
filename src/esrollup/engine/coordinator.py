# src/esrollup/engine/coordinator.py
"""Pipeline coordinator: spawns readers, drains the handoff, feeds the sink.

Flow:
    1. One reader per task is started immediately; each blocks on the
       admission gate before touching the cluster.
    2. The coordinator loops on "a unit arrived" vs "the tick timer fired".
       Units go straight to the sink. Ticks snapshot the ledger, render
       progress and check for completion.
    3. Once every task's ledger record is done the sink is flushed and
       closed.

Completion is only ever noticed on a tick, so a run ends at most one tick
interval after the last reader finished.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from esrollup.contracts.protocols import BulkSink, CursorSource, ProgressRenderer
from esrollup.contracts.types import IndexMatch, IndexTask, ProgressRecord, ProgressReport, RollupResult, TransferUnit
from esrollup.core.logging import get_logger
from esrollup.engine.admission import AdmissionGate
from esrollup.engine.clock import DEFAULT_CLOCK, Clock
from esrollup.engine.handoff import SynchronousHandoff
from esrollup.engine.ledger import ProgressLedger
from esrollup.engine.reader import DEFAULT_PROGRESS_BATCH, IndexReader

logger = get_logger(__name__)


def build_tasks(matches: Iterable[IndexMatch]) -> list[IndexTask]:
    """Assign tickets 1..n to matches in source-name order.

    Raises:
        ValueError: If a source index appears more than once
    """
    ordered = sorted(matches, key=lambda match: match.source_name)
    seen: set[str] = set()
    for match in ordered:
        if match.source_name in seen:
            raise ValueError(f"Source index {match.source_name!r} matched more than once")
        seen.add(match.source_name)
    return [
        IndexTask(source_name=match.source_name, dest_name=match.dest_name, ticket=ticket)
        for ticket, match in enumerate(ordered, start=1)
    ]


class PipelineCoordinator:
    """Runs one rollup from a fixed set of tasks to a flushed sink.

    Each coordinator owns its own admission gate, ledger and handoff, so
    running a second coordinator (e.g. a benchmark iteration) starts from
    clean state.
    """

    def __init__(
        self,
        tasks: Iterable[IndexTask],
        source: CursorSource,
        sink: BulkSink,
        *,
        threads: int,
        page_size: int,
        renderer: ProgressRenderer | None = None,
        tick_interval: float = 1.0,
        admission_poll_interval: float = 0.1,
        progress_batch: int = DEFAULT_PROGRESS_BATCH,
        clock: Clock | None = None,
    ) -> None:
        self._tasks = sorted(tasks, key=lambda task: task.ticket)
        tickets = [task.ticket for task in self._tasks]
        if tickets != list(range(1, len(tickets) + 1)):
            raise ValueError(f"Task tickets must be exactly 1..{len(tickets)}, got {tickets}")
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be > 0, got {tick_interval}")

        self._source = source
        self._sink = sink
        self._renderer = renderer
        self._page_size = page_size
        self._progress_batch = progress_batch
        self._tick_interval = tick_interval
        self._clock = clock or DEFAULT_CLOCK

        self._gate = AdmissionGate(threads, poll_interval=admission_poll_interval)
        self._ledger = ProgressLedger()
        self._handoff: SynchronousHandoff[TransferUnit] = SynchronousHandoff()

        self._failures: dict[str, str] = {}
        self._settled: set[str] = set()

    @property
    def tasks(self) -> list[IndexTask]:
        return list(self._tasks)

    @property
    def gate(self) -> AdmissionGate:
        return self._gate

    @property
    def ledger(self) -> ProgressLedger:
        return self._ledger

    def run(self) -> RollupResult:
        """Execute the rollup.

        Reader failures are logged and reported in the result; they never
        stop the other readers or this loop.

        Raises:
            Exception: Anything raised by the sink or renderer. Readers are
                unblocked via the handoff and the sink is closed before it
                propagates.
        """
        start = self._clock.monotonic()
        log = logger.bind(indexes=len(self._tasks), threads=self._gate.threads, page_size=self._page_size)
        log.info("rollup_started")

        received = 0
        if self._tasks:
            readers = [
                IndexReader(
                    task,
                    self._source,
                    self._gate,
                    self._ledger,
                    self._handoff,
                    page_size=self._page_size,
                    progress_batch=self._progress_batch,
                )
                for task in self._tasks
            ]
            executor = ThreadPoolExecutor(max_workers=len(readers), thread_name_prefix="index-reader")
            futures: dict[Future[int], IndexTask] = {executor.submit(reader.run): reader.task for reader in readers}
            try:
                received = self._pump(start, futures)
            except BaseException:
                self._handoff.close()
                executor.shutdown(wait=True)
                self._close_sink_after_error()
                raise
            executor.shutdown(wait=True)
            self._collect_failures(futures)

        self._sink.flush()
        self._sink.close()

        result = RollupResult(
            received=received,
            elapsed_seconds=self._clock.monotonic() - start,
            sink_stats=self._sink.stats(),
            records=self._ledger.snapshot(),
            failures=dict(self._failures),
        )
        if self._renderer is not None:
            self._renderer.render(
                ProgressReport(
                    elapsed_seconds=result.elapsed_seconds,
                    received=received,
                    running_workers=0,
                    records=result.records,
                    sink_stats=result.sink_stats,
                )
            )
        log.info(
            "rollup_complete",
            received=received,
            indexed=result.sink_stats.indexed,
            failed_documents=result.sink_stats.failed,
            failed_indexes=len(result.failures),
            elapsed_seconds=round(result.elapsed_seconds, 3),
        )
        return result

    def _close_sink_after_error(self) -> None:
        # The original error is what propagates; a second one is only logged
        try:
            self._sink.close()
        except Exception as e:
            logger.error("sink_close_failed", error=str(e), error_type=type(e).__name__)

    def _pump(self, start: float, futures: dict[Future[int], IndexTask]) -> int:
        """Forward units to the sink until a tick finds every task done."""
        received = 0
        next_tick = start + self._tick_interval
        while True:
            now = self._clock.monotonic()
            if now >= next_tick:
                if self._tick(start, received, futures):
                    return received
                next_tick = now + self._tick_interval
                continue

            unit = self._handoff.receive(timeout=next_tick - now)
            if unit is not None:
                self._sink.submit(unit.destination_name, unit.document_type, unit.document_id, unit.payload)
                received += 1

    def _tick(self, start: float, received: int, futures: dict[Future[int], IndexTask]) -> bool:
        records = self._ledger.snapshot()
        self._collect_failures(futures)
        if self._renderer is not None:
            self._renderer.render(self._report(start, received, records))

        if self._ledger.all_done(task.source_name for task in self._tasks):
            return True
        if all(future.done() for future in futures):
            # Only reachable if a reader died before registering its record
            logger.warning("rollup_readers_exited_early", missing=len(self._tasks) - len(records))
            return True
        return False

    def _report(self, start: float, received: int, records: tuple[ProgressRecord, ...]) -> ProgressReport:
        registered = {record.source_name for record in records}
        return ProgressReport(
            elapsed_seconds=self._clock.monotonic() - start,
            received=received,
            running_workers=self._gate.running_count,
            records=records,
            sink_stats=self._sink.stats(),
            pending=tuple(task for task in self._tasks if task.source_name not in registered),
        )

    def _collect_failures(self, futures: dict[Future[int], IndexTask]) -> None:
        for future, task in futures.items():
            if task.source_name in self._settled or not future.done():
                continue
            self._settled.add(task.source_name)
            error = future.exception()
            if error is not None:
                self._failures[task.source_name] = str(error)
                logger.error(
                    "reader_failed",
                    source=task.source_name,
                    dest=task.dest_name,
                    error=str(error),
                    error_type=type(error).__name__,
                )
