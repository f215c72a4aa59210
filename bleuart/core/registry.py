"""Paired-device enumeration."""

from __future__ import annotations

from bleuart.core.errors import DeviceNotFoundError
from bleuart.core.model import PairedDevice
from bleuart.transports.base import Provider

UNKNOWN_ALIAS = "(unknown)"
UNKNOWN_ADDRESS = "(no address)"


class DeviceRegistry:
    def __init__(self, provider: Provider) -> None:
        self.provider = provider

    def list_paired_devices(self) -> list[PairedDevice]:
        """Return paired devices in provider order.

        Provider failures propagate as ``TransportError`` and are not retried.
        """
        return [
            PairedDevice(
                alias=record.alias if record.alias is not None else UNKNOWN_ALIAS,
                address=record.address if record.address is not None else UNKNOWN_ADDRESS,
                path=record.handle,
            )
            for record in self.provider.list_devices()
            if record.paired
        ]

    def find(self, alias: str) -> PairedDevice:
        """First paired device whose alias matches exactly (case-sensitive)."""
        devices = self.list_paired_devices()
        for device in devices:
            if device.alias == alias:
                return device
        known = ", ".join(d.alias for d in devices) or "none"
        raise DeviceNotFoundError(f"Device with alias '{alias}' not found (paired: {known})")
