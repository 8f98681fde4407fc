"""Immutable records passed between readers, the coordinator and renderers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from esrollup.contracts.enums import ProgressStatus

DEFAULT_DOCUMENT_TYPE = "_doc"


@dataclass(frozen=True, slots=True)
class IndexMatch:
    """A discovered source index and the destination it rolls up into."""

    source_name: str
    dest_name: str


@dataclass(frozen=True, slots=True)
class IndexTask:
    """Unit of work for one reader.

    Attributes:
        source_name: Index to read from
        dest_name: Index every document is re-inserted into
        ticket: 1-based admission order, assigned once at discovery time
    """

    source_name: str
    dest_name: str
    ticket: int


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """Point-in-time copy of one index's progress.

    read_count never decreases while done is False. Once done is True it is
    the exact number of documents the reader emitted and never changes.
    A failed reader is still done.
    """

    source_name: str
    destination_name: str
    read_count: int = 0
    done: bool = False
    failed: bool = False

    @property
    def status(self) -> ProgressStatus:
        if self.failed:
            return ProgressStatus.FAILED
        if self.done:
            return ProgressStatus.COMPLETE
        if self.read_count > 0:
            return ProgressStatus.IN_PROGRESS
        return ProgressStatus.PENDING


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """One hit returned by a cursor page."""

    index: str
    document_id: str
    source: Mapping[str, Any]
    document_type: str = DEFAULT_DOCUMENT_TYPE


@dataclass(frozen=True, slots=True)
class CursorPage:
    """A page of hits. end_of_data=True means the cursor is exhausted."""

    documents: tuple[SourceDocument, ...]
    end_of_data: bool = False


@dataclass(frozen=True, slots=True)
class TransferUnit:
    """One source document addressed to its destination index.

    Produced by a reader, consumed exactly once by the coordinator.
    """

    destination_name: str
    document_type: str
    document_id: str
    payload: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class AdmissionState:
    """Snapshot of the admission gate's counters."""

    running_count: int
    last_admitted_ticket: int


@dataclass(frozen=True, slots=True)
class SinkStats:
    """Bulk sink counters. All fields only ever increase.

    Attributes:
        submitted: Documents accepted by submit()
        committed: Bulk requests sent to the cluster
        indexed: Documents the cluster acknowledged
        failed: Documents rejected or lost to a transport error
    """

    submitted: int = 0
    committed: int = 0
    indexed: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class ProgressReport:
    """Everything a renderer needs for one progress tick."""

    elapsed_seconds: float
    received: int
    running_workers: int
    records: tuple[ProgressRecord, ...]
    sink_stats: SinkStats
    pending: tuple[IndexTask, ...] = ()

    @property
    def documents_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.received / self.elapsed_seconds


@dataclass(frozen=True)
class RollupResult:
    """Outcome of a completed pipeline run.

    Attributes:
        received: TransferUnits the coordinator forwarded to the sink
        elapsed_seconds: Wall-clock duration of the run
        sink_stats: Final sink counters after flush
        records: Final ledger snapshot
        failures: Source index -> error message for readers that failed
    """

    received: int
    elapsed_seconds: float
    sink_stats: SinkStats
    records: tuple[ProgressRecord, ...] = ()
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failures)
