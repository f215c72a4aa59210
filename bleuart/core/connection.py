"""Session lifecycle: connect, send, poll, disconnect."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from bleuart.core.bridge import NotificationBridge
from bleuart.core.dispatcher import CallbackDispatcher, SessionListener
from bleuart.core.errors import (
    BleUartError,
    CharacteristicNotFoundError,
    DeviceNotFoundError,
    NotConnectedError,
    NotifySubscribeError,
    SendError,
    TransportConnectError,
    TransportError,
)
from bleuart.core.framer import Framer
from bleuart.core.model import (
    CharacteristicHandles,
    ConnectionState,
    PairedDevice,
    SessionInfo,
    Settings,
)
from bleuart.core.registry import DeviceRegistry
from bleuart.core.resolver import CharacteristicResolver
from bleuart.transports.base import Provider

LOGGER = logging.getLogger(__name__)


class ConnectionManager:
    """Owns one session with one peripheral.

    ``connect``, ``disconnect``, ``send`` and ``process_callbacks`` are serialised by a
    single re-entrant lock, so a ``disconnect`` from another thread waits for an
    in-flight multi-chunk ``send`` to finish. Listener callbacks only ever run inside
    those calls. The provider's notification thread touches nothing but the bridge.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        listener: SessionListener | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or Settings()
        self.provider = provider
        self.registry = DeviceRegistry(provider)
        self.resolver = CharacteristicResolver(self.settings.tx_uuid, self.settings.rx_uuid)
        self.framer = Framer(
            chunk_size=self.settings.chunk_size,
            pacing_s=self.settings.pacing_s,
            encoding=self.settings.encoding,
            sleep=sleep,
        )
        self.bridge = NotificationBridge()
        self.dispatcher = CallbackDispatcher(listener)
        self.last_error: BleUartError | None = None
        self._clock = clock
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._device: PairedDevice | None = None
        self._handles: CharacteristicHandles | None = None
        self._subscribed = False
        self._alias: str | None = None
        self._keep_connection = False
        self._reconnect_attempt = 0
        self._reconnect_at: float | None = None

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def device(self) -> PairedDevice | None:
        return self._device

    @property
    def handles(self) -> CharacteristicHandles | None:
        return self._handles

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_at is not None

    def list_paired_devices(self) -> list[PairedDevice]:
        return self.registry.list_paired_devices()

    def connect(self, alias: str, keep_connection: bool = False) -> bool:
        """Open a session with the first paired device named ``alias``.

        Returns ``False`` on failure; the error is passed to ``on_error`` and kept in
        ``last_error``.
        """
        with self._lock:
            if self._state is ConnectionState.CONNECTED:
                return True
            self._alias = alias
            self._keep_connection = keep_connection
            self._cancel_reconnect()
            return self._establish(alias)

    def disconnect(self) -> None:
        with self._lock:
            if self._state is ConnectionState.DISCONNECTED:
                return
            self._cancel_reconnect()
            self._keep_connection = False
            self._teardown()
            self._state = ConnectionState.DISCONNECTED
            LOGGER.info("Disconnected from %s", self._alias)
            self.dispatcher.disconnected("disconnect requested", False)

    def send(self, text: str) -> bool:
        with self._lock:
            if self._state is not ConnectionState.CONNECTED or self._handles is None:
                return self._report(NotConnectedError(f"Cannot send while {self._state.value}"))

            try:
                payload = text.encode(self.settings.encoding)
            except UnicodeEncodeError as exc:
                return self._report(SendError(f"Message is not encodable as {self.settings.encoding}: {exc}"))

            tx = self._handles.tx
            try:
                self.framer.write_chunks(payload, lambda chunk: self.provider.write(tx, chunk))
            except SendError as exc:
                return self._report(exc)
            return True

    def process_callbacks(self) -> int:
        """Deliver queued notifications to the listener; call this from the host loop.

        Also handles a reported link loss and any due reconnect attempt. Returns the
        number of messages dispatched.
        """
        with self._lock:
            dispatched = 0
            fragments = self.bridge.drain()
            if self._state is ConnectionState.CONNECTED:
                for fragment in fragments:
                    LOGGER.debug("RX fragment %r", fragment)
                    for message in self.framer.feed(fragment):
                        self.dispatcher.message(message)
                        dispatched += 1

            reason = self.bridge.take_link_lost()
            if reason is not None and self._state is ConnectionState.CONNECTED:
                self._handle_link_lost(reason)

            self._maybe_reconnect()
            return dispatched

    def close(self) -> None:
        self.disconnect()
        self.provider.close()

    def _establish(self, alias: str) -> bool:
        self.last_error = None
        self._state = ConnectionState.CONNECTING
        LOGGER.info("Connecting to %s", alias)

        try:
            device = self.registry.find(alias)
        except (DeviceNotFoundError, TransportError) as exc:
            return self._fail(exc)

        try:
            self.provider.connect(device.path)
        except TransportError as exc:
            if not isinstance(exc, TransportConnectError):
                exc = TransportConnectError(f"Failed to connect to {alias}: {exc}")
            return self._fail(exc)
        self._device = device

        self._state = ConnectionState.RESOLVING_CHARACTERISTICS
        try:
            handles = self.resolver.resolve(self.provider, device.path)
        except (CharacteristicNotFoundError, TransportError) as exc:
            return self._fail(exc)
        self._handles = handles

        self.bridge.clear()
        self.framer.reset()
        try:
            self.provider.subscribe(handles.rx, self.bridge.push)
            self._subscribed = True
            self.provider.watch_link(device.path, self.bridge.mark_link_lost)
        except TransportError as exc:
            if not isinstance(exc, NotifySubscribeError):
                exc = NotifySubscribeError(f"Failed to start notifications: {exc}")
            return self._fail(exc)

        self._state = ConnectionState.CONNECTED
        LOGGER.info("Connected to %s [%s]", device.alias, device.address)
        self.dispatcher.connected(SessionInfo(device=device, handles=handles))
        return True

    def _fail(self, exc: BleUartError) -> bool:
        self._teardown()
        self._state = ConnectionState.FAILED
        LOGGER.warning("Connection failed: %s", exc)
        return self._report(exc)

    def _report(self, exc: BleUartError) -> bool:
        self.last_error = exc
        self.dispatcher.error(str(exc), self._state)
        return False

    def _teardown(self) -> None:
        device, handles, subscribed = self._device, self._handles, self._subscribed
        self._device = None
        self._handles = None
        self._subscribed = False

        if device is not None:
            try:
                self.provider.watch_link(device.path, None)
            except Exception as exc:
                LOGGER.warning("Ignoring link watch removal failure: %s", exc)
        if handles is not None and subscribed:
            try:
                self.provider.unsubscribe(handles.rx)
            except Exception as exc:
                LOGGER.warning("Ignoring unsubscribe failure: %s", exc)
        if device is not None:
            try:
                self.provider.disconnect(device.path)
            except Exception as exc:
                LOGGER.warning("Ignoring provider disconnect failure: %s", exc)

        self.bridge.clear()
        self.framer.reset()

    def _handle_link_lost(self, reason: str) -> None:
        LOGGER.warning("Link lost: %s", reason)
        self._teardown()
        self._state = ConnectionState.FAILED
        self.last_error = TransportError(reason)
        self.dispatcher.disconnected(reason, True)

        policy = self.settings.reconnect
        if self._keep_connection and policy.max_attempts > 0:
            self._reconnect_attempt = 0
            self._reconnect_at = self._clock() + policy.delay_for(0)

    def _maybe_reconnect(self) -> None:
        if self._reconnect_at is None or self._alias is None:
            return
        if self._clock() < self._reconnect_at:
            return

        policy = self.settings.reconnect
        attempt = self._reconnect_attempt + 1
        self._reconnect_at = None
        LOGGER.info("Reconnect attempt %d/%d to %s", attempt, policy.max_attempts, self._alias)
        if self._establish(self._alias):
            self._reconnect_attempt = 0
            return

        if attempt >= policy.max_attempts:
            self._reconnect_attempt = 0
            self.dispatcher.error(
                f"Giving up reconnecting to {self._alias} after {attempt} attempts",
                self._state,
            )
            return
        self._reconnect_attempt = attempt
        self._reconnect_at = self._clock() + policy.delay_for(attempt)

    def _cancel_reconnect(self) -> None:
        self._reconnect_at = None
        self._reconnect_attempt = 0
