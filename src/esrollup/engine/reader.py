# src/esrollup/engine/reader.py
"""Per-index reader.

One IndexReader exists for each matched source index. It waits for
admission, registers its progress record, pages through the index and
hands every document to the coordinator, one at a time.

Whatever happens after admission, the reader finishes by closing its
cursor, marking its ledger record done with the exact emitted count and
releasing its admission slot - in that order. A record that never reaches
done would keep the coordinator polling forever.
"""

from __future__ import annotations

from esrollup.contracts.enums import ReaderState
from esrollup.contracts.errors import HandoffClosedError
from esrollup.contracts.protocols import Cursor, CursorSource
from esrollup.contracts.types import IndexTask, TransferUnit
from esrollup.core.logging import get_logger
from esrollup.engine.admission import AdmissionGate
from esrollup.engine.handoff import SynchronousHandoff
from esrollup.engine.ledger import ProgressLedger

logger = get_logger(__name__)

DEFAULT_PROGRESS_BATCH = 100


class IndexReader:
    """Streams one source index into the shared handoff."""

    def __init__(
        self,
        task: IndexTask,
        source: CursorSource,
        gate: AdmissionGate,
        ledger: ProgressLedger,
        handoff: SynchronousHandoff[TransferUnit],
        *,
        page_size: int,
        progress_batch: int = DEFAULT_PROGRESS_BATCH,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        if progress_batch < 1:
            raise ValueError(f"progress_batch must be >= 1, got {progress_batch}")
        self._task = task
        self._source = source
        self._gate = gate
        self._ledger = ledger
        self._handoff = handoff
        self._page_size = page_size
        self._progress_batch = progress_batch
        self._state = ReaderState.WAITING_FOR_ADMISSION
        self._emitted = 0

    @property
    def task(self) -> IndexTask:
        return self._task

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def emitted(self) -> int:
        """Documents handed to the coordinator so far."""
        return self._emitted

    def run(self) -> int:
        """Read the whole index.

        Returns:
            Number of documents emitted.

        Raises:
            ReaderFetchError: If the cursor fails. The record is still marked
                done (and failed) before this propagates.
        """
        task = self._task
        log = logger.bind(source=task.source_name, dest=task.dest_name, ticket=task.ticket)

        self._gate.wait_for_admission(task.ticket)
        try:
            self._ledger.create(task.source_name, task.dest_name)
        except BaseException:
            self._gate.release()
            raise
        self._state = ReaderState.READING
        log.debug("reader_admitted")

        failed = True
        cursor: Cursor | None = None
        try:
            if self._handoff.closed:
                # Coordinator has stopped receiving
                raise HandoffClosedError("handoff closed before reading started")
            cursor = self._source.open_cursor(task.source_name, self._page_size)
            self._drain(cursor)
            failed = False
        except HandoffClosedError:
            log.warning("reader_stopped", reason="handoff closed", emitted=self._emitted)
        finally:
            try:
                if cursor is not None:
                    cursor.close()
            finally:
                self._finish(failed)

        log.debug("reader_done", emitted=self._emitted)
        return self._emitted

    def _drain(self, cursor: Cursor) -> None:
        task = self._task
        unreported = 0
        while True:
            page = cursor.next_page()
            for document in page.documents:
                self._handoff.send(
                    TransferUnit(
                        destination_name=task.dest_name,
                        document_type=document.document_type,
                        document_id=document.document_id,
                        payload=document.source,
                    )
                )
                self._emitted += 1
                unreported += 1
                if unreported == self._progress_batch:
                    self._ledger.increment_read(task.source_name, unreported)
                    unreported = 0
            if page.end_of_data:
                return

    def _finish(self, failed: bool) -> None:
        self._state = ReaderState.FAILED if failed else ReaderState.DONE
        try:
            self._ledger.mark_done(self._task.source_name, self._emitted, failed=failed)
        finally:
            self._gate.release()
