"""Transport provider interface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from bleuart.core.model import CharacteristicRecord, DeviceRecord

ValueCallback = Callable[[bytes], None]
LinkLostCallback = Callable[[str], None]


class Provider(Protocol):
    """Low-level BLE access used by the connection manager.

    Every method except the callbacks it is handed runs on the caller's thread and
    blocks until the underlying operation finishes. ``on_change`` and ``on_lost`` are
    invoked from the provider's own background context. Failures raise
    :class:`bleuart.core.errors.TransportError`.
    """

    def list_devices(self) -> list[DeviceRecord]:
        """Enumerate every device known to the platform, paired or not."""

    def connect(self, handle: Any) -> None:
        """Establish the link to a device."""

    def disconnect(self, handle: Any) -> None:
        """Tear down the link to a device."""

    def list_characteristics(self, handle: Any) -> list[CharacteristicRecord]:
        """Enumerate GATT characteristics reachable from a connected device."""

    def write(self, char_handle: Any, data: bytes) -> None:
        """Write one value to a characteristic; no implicit chunking."""

    def subscribe(self, char_handle: Any, on_change: ValueCallback) -> None:
        """Enable notifications and deliver each new value to ``on_change``."""

    def unsubscribe(self, char_handle: Any) -> None:
        """Disable notifications on a characteristic."""

    def watch_link(self, handle: Any, on_lost: LinkLostCallback | None) -> None:
        """Report an unexpected link drop to ``on_lost``; ``None`` stops watching."""

    def close(self) -> None:
        """Release provider resources."""
