"""Background asyncio loop shared by the async BLE providers."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

from bleuart.core.errors import TransportError

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)


class LoopThread:
    """Runs an event loop on a daemon thread and lets sync code await on it.

    Provider callbacks (notifications, disconnect signals) fire on this thread.
    """

    def __init__(self, name: str = "bleuart-loop") -> None:
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        self.start()
        assert self._loop is not None
        return self._loop

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._ready.clear()
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()
        if not self._ready.wait(timeout=5.0):
            raise TransportError("Failed to start BLE event loop within timeout")

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        LOGGER.debug("Event loop thread started")
        try:
            loop.run_forever()
        finally:
            loop.close()
            LOGGER.debug("Event loop thread stopped")

    def run(self, coro: Coroutine[Any, Any, T], timeout_s: float | None = None) -> T:
        """Run ``coro`` on the loop thread and block until it finishes."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout=timeout_s)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            raise TransportError(f"BLE operation timed out after {timeout_s}s") from exc

    def stop(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=5.0)
