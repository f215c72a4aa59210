"""Hand-off of notification payloads from the provider thread to the poll loop."""

from __future__ import annotations

import threading
from collections import deque


class NotificationBridge:
    """FIFO of raw fragments with one lock and swap-out draining.

    ``push`` and ``mark_link_lost`` are the only methods meant for the provider's
    notification context; they never call back into application code.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queue: deque[bytes] = deque()
        self._link_lost: str | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def push(self, fragment: bytes) -> None:
        with self._lock:
            self._queue.append(fragment)

    def drain(self) -> list[bytes]:
        with self._lock:
            pending, self._queue = self._queue, deque()
        return list(pending)

    def clear(self) -> None:
        with self._lock:
            self._queue = deque()
            self._link_lost = None

    def mark_link_lost(self, reason: str) -> None:
        with self._lock:
            if self._link_lost is None:
                self._link_lost = reason

    def take_link_lost(self) -> str | None:
        with self._lock:
            reason, self._link_lost = self._link_lost, None
        return reason
