# src/esrollup/engine/ledger.py
"""Progress ledger shared by readers and the coordinator.

Readers write their own record; the coordinator reads snapshots to render
progress and to decide when the run is over. Every mutation and every
snapshot takes the same lock, and snapshots are immutable copies so
rendering never happens under the lock.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from threading import Lock

from esrollup.contracts.types import ProgressRecord


@dataclass
class _Entry:
    """Mutable ledger entry. Never leaves the ledger."""

    destination_name: str
    read_count: int = 0
    done: bool = False
    failed: bool = False


class ProgressLedger:
    """Thread-safe map of source index name -> progress."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    def create(self, source_name: str, dest_name: str) -> None:
        """Register a reader that has just been admitted.

        Raises:
            ValueError: If the source index is already registered
        """
        with self._lock:
            if source_name in self._entries:
                raise ValueError(f"Source index {source_name!r} is already registered")
            self._entries[source_name] = _Entry(destination_name=dest_name)

    def increment_read(self, source_name: str, delta: int) -> None:
        """Add `delta` documents to a running reader's count.

        Raises:
            KeyError: If the source index was never registered
            ValueError: If delta is negative or the record is already done
        """
        if delta < 0:
            raise ValueError(f"delta must be >= 0, got {delta}")
        with self._lock:
            entry = self._entries[source_name]
            if entry.done:
                raise ValueError(f"Source index {source_name!r} is already done")
            entry.read_count += delta

    def mark_done(self, source_name: str, final_count: int, *, failed: bool = False) -> None:
        """Record the exact final count and make the record terminal.

        Raises:
            KeyError: If the source index was never registered
            ValueError: If the record is already done
        """
        with self._lock:
            entry = self._entries[source_name]
            if entry.done:
                raise ValueError(f"Source index {source_name!r} is already done")
            entry.read_count = final_count
            entry.done = True
            entry.failed = failed

    def snapshot(self) -> tuple[ProgressRecord, ...]:
        """Immutable copy of every record, ordered by source name."""
        with self._lock:
            return tuple(
                ProgressRecord(
                    source_name=name,
                    destination_name=entry.destination_name,
                    read_count=entry.read_count,
                    done=entry.done,
                    failed=entry.failed,
                )
                for name, entry in sorted(self._entries.items())
            )

    def all_done(self, expected: Iterable[str]) -> bool:
        """True iff every expected source index has a record and all are done.

        A reader that has not been admitted yet has no record, so an
        expected name without a record means the run is not over.
        """
        with self._lock:
            for name in expected:
                entry = self._entries.get(name)
                if entry is None or not entry.done:
                    return False
            return True

    def total_read(self) -> int:
        with self._lock:
            return sum(entry.read_count for entry in self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
