"""Transport providers."""

from __future__ import annotations

from bleuart.core.errors import ConfigValidationError
from bleuart.transports.base import Provider
from bleuart.transports.ble_gatt import BleakProvider
from bleuart.transports.bluez import BlueZProvider

PROVIDERS = ("bluez", "bleak")


def create_provider(name: str, *, timeout_s: float = 10.0) -> Provider:
    if name == "bluez":
        return BlueZProvider(timeout_s=timeout_s)
    if name == "bleak":
        return BleakProvider(timeout_s=timeout_s)
    raise ConfigValidationError(
        f"Unsupported transport type '{name}'. Choose one of: {', '.join(PROVIDERS)}"
    )
