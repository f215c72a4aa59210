"""Stable public API for building tooling on top of bleuart.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from bleuart.core.config_loader import load_settings
from bleuart.core.connection import ConnectionManager
from bleuart.core.dispatcher import CallbackListener, SessionListener
from bleuart.core.errors import (
    BleUartError,
    CharacteristicNotFoundError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceNotFoundError,
    NotConnectedError,
    NotifySubscribeError,
    SendError,
    TransportConnectError,
    TransportError,
)
from bleuart.core.model import (
    CharacteristicHandles,
    ConnectionState,
    PairedDevice,
    ReconnectPolicy,
    SessionInfo,
    Settings,
)
from bleuart.transports import create_provider
from bleuart.transports.base import Provider

__all__ = [
    "BleUartError",
    "CharacteristicNotFoundError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceNotFoundError",
    "NotConnectedError",
    "NotifySubscribeError",
    "SendError",
    "TransportConnectError",
    "TransportError",
    "CharacteristicHandles",
    "ConnectionState",
    "PairedDevice",
    "ReconnectPolicy",
    "SessionInfo",
    "Settings",
    "CallbackListener",
    "SessionListener",
    "Provider",
    "Client",
]


class Client:
    """Public client for a single BLE UART session.

    A `Client` wires settings, a transport provider and a listener into a
    connection manager. The host application must call `process_callbacks()`
    periodically; listener methods only run inside that call and inside
    `connect()`/`disconnect()`.
    """

    def __init__(
        self,
        *,
        provider: Provider | None = None,
        settings: Settings | None = None,
        listener: SessionListener | None = None,
        config_path: Path | None = None,
    ) -> None:
        self.settings = settings or load_settings(config_path)
        self._manager = ConnectionManager(
            provider or create_provider(self.settings.transport, timeout_s=self.settings.timeout_s),
            listener=listener,
            settings=self.settings,
        )

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def state(self) -> ConnectionState:
        return self._manager.state

    @property
    def last_error(self) -> BleUartError | None:
        return self._manager.last_error

    def list_paired_devices(self) -> list[PairedDevice]:
        return self._manager.list_paired_devices()

    def connect(self, alias: str, keep_connection: bool = False) -> bool:
        return self._manager.connect(alias, keep_connection)

    def disconnect(self) -> None:
        self._manager.disconnect()

    def send(self, text: str) -> bool:
        return self._manager.send(text)

    def process_callbacks(self) -> int:
        return self._manager.process_callbacks()

    def close(self) -> None:
        self._manager.close()
