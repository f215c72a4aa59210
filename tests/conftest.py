from __future__ import annotations

from typing import Any

import pytest

from bleuart.core.errors import TransportError
from bleuart.core.model import CharacteristicRecord, DeviceRecord, Settings

TX_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
RX_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
DEVICE_PATH = "/org/bluez/hci0/dev_E5_3A_11_22_33_44"


class FakeProvider:
    def __init__(self) -> None:
        self.devices: list[DeviceRecord] = [
            DeviceRecord(handle=DEVICE_PATH, alias="BBC micro:bit", address="E5:3A:11:22:33:44", paired=True),
        ]
        self.characteristics: dict[Any, list[CharacteristicRecord]] = {
            DEVICE_PATH: [
                CharacteristicRecord(uuid=TX_UUID.upper(), handle=f"{DEVICE_PATH}/service0010/char0011"),
                CharacteristicRecord(uuid=RX_UUID, handle=f"{DEVICE_PATH}/service0010/char0013"),
            ]
        }
        self.failures: dict[str, Exception] = {}
        self.fail_write_at: int | None = None
        self.calls: list[tuple[str, Any]] = []
        self.writes: list[tuple[Any, bytes]] = []
        self.subscriptions: dict[Any, Any] = {}
        self.link_watchers: dict[Any, Any] = {}
        self.closed = False

    def _check(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        exc = self.failures.get(op)
        if exc is not None:
            raise exc

    def list_devices(self) -> list[DeviceRecord]:
        self._check("list_devices")
        return list(self.devices)

    def connect(self, handle: Any) -> None:
        self._check("connect", handle)

    def disconnect(self, handle: Any) -> None:
        self._check("disconnect", handle)

    def list_characteristics(self, handle: Any) -> list[CharacteristicRecord]:
        self._check("list_characteristics", handle)
        return list(self.characteristics.get(handle, []))

    def write(self, char_handle: Any, data: bytes) -> None:
        self._check("write", char_handle)
        if self.fail_write_at is not None and len(self.writes) == self.fail_write_at:
            raise TransportError("GATT write rejected")
        self.writes.append((char_handle, data))

    def subscribe(self, char_handle: Any, on_change: Any) -> None:
        self._check("subscribe", char_handle)
        self.subscriptions[char_handle] = on_change

    def unsubscribe(self, char_handle: Any) -> None:
        self._check("unsubscribe", char_handle)
        self.subscriptions.pop(char_handle, None)

    def watch_link(self, handle: Any, on_lost: Any) -> None:
        self._check("watch_link", handle)
        if on_lost is None:
            self.link_watchers.pop(handle, None)
        else:
            self.link_watchers[handle] = on_lost

    def close(self) -> None:
        self.closed = True

    def notify(self, data: bytes) -> None:
        for callback in list(self.subscriptions.values()):
            callback(data)

    def drop_link(self, reason: str = "link supervision timeout") -> None:
        for callback in list(self.link_watchers.values()):
            callback(reason)

    def ops(self, name: str) -> list[tuple[str, Any]]:
        return [call for call in self.calls if call[0] == name]


class RecordingListener:
    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def on_connected(self, context: Any) -> None:
        self.events.append(("connected", context))

    def on_disconnected(self, reason: str, is_failure: bool) -> None:
        self.events.append(("disconnected", reason, is_failure))

    def on_error(self, message: str, state: Any) -> None:
        self.events.append(("error", message, state))

    def on_message(self, text: str) -> None:
        self.events.append(("message", text))

    def named(self, name: str) -> list[tuple[Any, ...]]:
        return [event for event in self.events if event[0] == name]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def settings() -> Settings:
    return Settings(pacing_s=0.0)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
