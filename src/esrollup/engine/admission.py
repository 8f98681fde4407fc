# src/esrollup/engine/admission.py
"""Admission gate for index readers.

Readers start in strict ticket order (1, 2, 3, ...) and at most `threads`
of them run at once. Order is by admission, not completion: once ticket t
is admitted, ticket t+1 may start as soon as a slot is free, even while t
is still running.

Waiting readers poll every `poll_interval` seconds rather than being woken
on release.
"""

from __future__ import annotations

import time
from threading import Lock

from esrollup.contracts.types import AdmissionState


class AdmissionGate:
    """Thread-safe ticket-ordered concurrency gate.

    Usage:
        gate = AdmissionGate(threads=2)

        gate.wait_for_admission(task.ticket)
        try:
            ...read the index...
        finally:
            gate.release()
    """

    def __init__(self, threads: int, poll_interval: float = 0.1) -> None:
        """Initialize the gate.

        Args:
            threads: Maximum concurrently admitted readers (must be >= 1)
            poll_interval: Seconds between admission attempts in wait_for_admission()
        """
        if threads < 1:
            raise ValueError(f"threads must be >= 1, got {threads}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")
        self._threads = threads
        self._poll_interval = poll_interval
        self._lock = Lock()
        self._running_count = 0
        self._last_admitted_ticket = 0
        self._max_running = 0

    @property
    def threads(self) -> int:
        return self._threads

    @property
    def running_count(self) -> int:
        """Currently admitted and not yet released readers (thread-safe)."""
        with self._lock:
            return self._running_count

    @property
    def max_running(self) -> int:
        """Highest running_count observed so far (thread-safe)."""
        with self._lock:
            return self._max_running

    @property
    def state(self) -> AdmissionState:
        """Consistent snapshot of both counters (thread-safe)."""
        with self._lock:
            return AdmissionState(
                running_count=self._running_count,
                last_admitted_ticket=self._last_admitted_ticket,
            )

    def try_admit(self, ticket: int) -> bool:
        """Admit `ticket` if a slot is free and `ticket - 1` was the last admitted.

        Returns:
            True if admitted (running_count incremented, last ticket updated);
            False with no state change otherwise.
        """
        with self._lock:
            if self._running_count >= self._threads:
                return False
            if self._last_admitted_ticket != ticket - 1:
                return False
            self._running_count += 1
            self._last_admitted_ticket = ticket
            if self._running_count > self._max_running:
                self._max_running = self._running_count
            return True

    def release(self) -> None:
        """Give back an admitted slot. Does not touch the last admitted ticket.

        Raises:
            RuntimeError: If nothing is currently admitted
        """
        with self._lock:
            if self._running_count == 0:
                raise RuntimeError("release() called with no admitted readers")
            self._running_count -= 1

    def wait_for_admission(self, ticket: int) -> None:
        """Block, polling every poll_interval seconds, until `ticket` is admitted."""
        while not self.try_admit(ticket):
            time.sleep(self._poll_interval)
