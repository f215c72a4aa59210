from __future__ import annotations

import pytest

from bleuart.core.errors import CharacteristicNotFoundError
from bleuart.core.model import CharacteristicRecord
from bleuart.core.resolver import CharacteristicResolver

from conftest import DEVICE_PATH, RX_UUID, TX_UUID


def test_first_match_per_role_wins(provider) -> None:
    provider.characteristics[DEVICE_PATH] = [
        CharacteristicRecord(uuid="00002a00-0000-1000-8000-00805f9b34fb", handle="name"),
        CharacteristicRecord(uuid=RX_UUID.upper(), handle="rx1"),
        CharacteristicRecord(uuid=TX_UUID, handle="tx1"),
        CharacteristicRecord(uuid=TX_UUID, handle="tx2"),
        CharacteristicRecord(uuid=RX_UUID, handle="rx2"),
    ]

    handles = CharacteristicResolver(TX_UUID, RX_UUID).resolve(provider, DEVICE_PATH)

    assert handles.tx == "tx1"
    assert handles.rx == "rx1"


def test_missing_role_raises(provider) -> None:
    provider.characteristics[DEVICE_PATH] = [CharacteristicRecord(uuid=TX_UUID, handle="tx")]

    with pytest.raises(CharacteristicNotFoundError, match="RX"):
        CharacteristicResolver(TX_UUID, RX_UUID).resolve(provider, DEVICE_PATH)


def test_no_characteristics_names_both_roles(provider) -> None:
    provider.characteristics[DEVICE_PATH] = []

    with pytest.raises(CharacteristicNotFoundError, match="TX and RX"):
        CharacteristicResolver(TX_UUID, RX_UUID).resolve(provider, DEVICE_PATH)
