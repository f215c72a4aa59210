"""Application callbacks for session events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from bleuart.core.model import ConnectionState, SessionInfo

LOGGER = logging.getLogger(__name__)


class SessionListener:
    """Receives session events; override the methods you need.

    Every method runs on the thread that called ``connect``, ``disconnect`` or
    ``process_callbacks``, never on the notification thread.
    """

    def on_connected(self, context: SessionInfo) -> None:
        pass

    def on_disconnected(self, reason: str, is_failure: bool) -> None:
        pass

    def on_error(self, message: str, state: ConnectionState) -> None:
        pass

    def on_message(self, text: str) -> None:
        pass


class CallbackListener(SessionListener):
    """Listener built from plain callables; any of them may be omitted."""

    def __init__(
        self,
        *,
        on_connected: Callable[[SessionInfo], Any] | None = None,
        on_disconnected: Callable[[str, bool], Any] | None = None,
        on_error: Callable[[str, ConnectionState], Any] | None = None,
        on_message: Callable[[str], Any] | None = None,
    ) -> None:
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._on_error = on_error
        self._on_message = on_message

    def on_connected(self, context: SessionInfo) -> None:
        if self._on_connected:
            self._on_connected(context)

    def on_disconnected(self, reason: str, is_failure: bool) -> None:
        if self._on_disconnected:
            self._on_disconnected(reason, is_failure)

    def on_error(self, message: str, state: ConnectionState) -> None:
        if self._on_error:
            self._on_error(message, state)

    def on_message(self, text: str) -> None:
        if self._on_message:
            self._on_message(text)


class CallbackDispatcher:
    """Forwards events to the listener; a failing handler is logged, not re-raised."""

    def __init__(self, listener: SessionListener | None = None) -> None:
        self.listener = listener or SessionListener()

    def _invoke(self, name: str, *args: Any) -> None:
        try:
            getattr(self.listener, name)(*args)
        except Exception:
            LOGGER.exception("Listener %s raised", name)

    def connected(self, context: SessionInfo) -> None:
        self._invoke("on_connected", context)

    def disconnected(self, reason: str, is_failure: bool) -> None:
        self._invoke("on_disconnected", reason, is_failure)

    def error(self, message: str, state: ConnectionState) -> None:
        self._invoke("on_error", message, state)

    def message(self, text: str) -> None:
        self._invoke("on_message", text)
