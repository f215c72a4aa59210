from __future__ import annotations

import pytest

from bleuart.core.errors import DeviceNotFoundError, TransportError
from bleuart.core.model import DeviceRecord
from bleuart.core.registry import DeviceRegistry


def test_unpaired_devices_are_excluded_and_defaults_applied(provider) -> None:
    provider.devices = [
        DeviceRecord(handle="/dev_a", alias="Robot", address="AA:BB:CC:00:00:01", paired=True),
        DeviceRecord(handle="/dev_b", alias="Stranger", address="AA:BB:CC:00:00:02", paired=False),
        DeviceRecord(handle="/dev_c", alias=None, address=None, paired=True),
    ]

    devices = DeviceRegistry(provider).list_paired_devices()

    assert [(d.alias, d.address, d.path) for d in devices] == [
        ("Robot", "AA:BB:CC:00:00:01", "/dev_a"),
        ("(unknown)", "(no address)", "/dev_c"),
    ]


def test_find_returns_first_exact_match(provider) -> None:
    provider.devices = [
        DeviceRecord(handle="/dev_a", alias="robot", address="1", paired=True),
        DeviceRecord(handle="/dev_b", alias="Robot", address="2", paired=True),
        DeviceRecord(handle="/dev_c", alias="Robot", address="3", paired=True),
    ]
    assert DeviceRegistry(provider).find("Robot").path == "/dev_b"


def test_find_unknown_alias_raises(provider) -> None:
    with pytest.raises(DeviceNotFoundError):
        DeviceRegistry(provider).find("Nope")


def test_transport_failure_propagates(provider) -> None:
    provider.failures["list_devices"] = TransportError("bluetoothd not running")
    with pytest.raises(TransportError):
        DeviceRegistry(provider).list_paired_devices()
    assert len(provider.ops("list_devices")) == 1
