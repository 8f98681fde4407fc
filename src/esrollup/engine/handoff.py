# src/esrollup/engine/handoff.py
"""Zero-capacity handoff between reader threads and the coordinator.

send() does not return until the coordinator has taken the item, so a
reader can never get ahead of the sink by more than one document. This is
the backpressure path from bulk writes back to scroll reads; a buffered
queue.Queue would break it.
"""

from __future__ import annotations

from threading import Condition, Lock
from typing import Generic, TypeVar

from esrollup.contracts.errors import HandoffClosedError

T = TypeVar("T")


class SynchronousHandoff(Generic[T]):
    """Rendezvous channel: many senders, one receiver, no buffer.

    Usage:
        handoff = SynchronousHandoff[TransferUnit]()

        # reader thread
        handoff.send(unit)             # blocks until received

        # coordinator thread
        unit = handoff.receive(timeout=0.5)
        if unit is not None:
            sink.submit(...)
    """

    def __init__(self) -> None:
        self._cond = Condition()
        # Serializes senders so at most one item is ever in flight
        self._send_lock = Lock()
        self._item: T | None = None
        self._has_item = False
        self._closed = False
        self._delivered = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def delivered(self) -> int:
        """Items handed to the receiver so far."""
        with self._cond:
            return self._delivered

    def send(self, item: T) -> None:
        """Offer `item` and block until the receiver takes it.

        Raises:
            HandoffClosedError: If the handoff is closed before the item is taken
        """
        with self._send_lock, self._cond:
            if self._closed:
                raise HandoffClosedError("handoff is closed")
            self._item = item
            self._has_item = True
            self._cond.notify_all()
            while self._has_item and not self._closed:
                self._cond.wait()
            if self._has_item:
                # Closed while our item was still on offer
                self._item = None
                self._has_item = False
                raise HandoffClosedError("handoff closed before item was received")

    def receive(self, timeout: float | None = None) -> T | None:
        """Take the item on offer, waiting up to `timeout` seconds for one.

        Returns:
            The item, or None on timeout or once closed.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._has_item or self._closed, timeout):
                return None
            if not self._has_item:
                return None
            item = self._item
            self._item = None
            self._has_item = False
            self._delivered += 1
            self._cond.notify_all()
            return item

    def close(self) -> None:
        """Fail the pending send (if any) and every future send."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
