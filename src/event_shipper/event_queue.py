"""Thread-safe FIFO buffer of events waiting for delivery."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class EventQueue:
    """
    Unbounded FIFO queue shared between producers and the dispatcher.

    Producers on any thread call ``enqueue``; the dispatcher is the only
    consumer and removes events with ``drain``. The lock guards mutation
    only, so no network I/O ever happens while it is held.
    """
    _events: deque = field(default_factory=deque, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def enqueue(self, event: Any) -> None:
        """Append an event at the tail. Never blocks on I/O, never rejects."""
        with self._lock:
            self._events.append(event)

    def drain(self, max_count: int) -> list[Any]:
        """
        Remove and return up to ``max_count`` events from the head.

        Relative order is preserved. Returns an empty list when the queue
        is empty or ``max_count`` is not positive.
        """
        if max_count <= 0:
            return []

        with self._lock:
            count = min(max_count, len(self._events))
            return [self._events.popleft() for _ in range(count)]

    def requeue(self, event: Any) -> None:
        """
        Return an event whose delivery failed.

        The event goes to the tail, behind anything enqueued since it was
        drained, so retried events may be delivered out of arrival order.
        """
        with self._lock:
            self._events.append(event)

    def snapshot(self) -> list[Any]:
        """Ordered copy of the pending events."""
        with self._lock:
            return list(self._events)

    @property
    def pending(self) -> int:
        """Number of events waiting for delivery."""
        return len(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
