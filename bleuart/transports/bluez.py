"""BlueZ transport implementation over the system D-Bus (dbus-next)."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from bleuart.core.errors import TransportConnectError, TransportError
from bleuart.core.model import CharacteristicRecord, DeviceRecord
from bleuart.transports.base import LinkLostCallback, ValueCallback
from bleuart.transports.eventloop import LoopThread

BLUEZ_SERVICE_NAME = "org.bluez"
OBJECT_MANAGER_INTERFACE = "org.freedesktop.DBus.ObjectManager"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
DEVICE_INTERFACE = "org.bluez.Device1"
GATT_CHARACTERISTIC_INTERFACE = "org.bluez.GattCharacteristic1"
SERVICES_CHECK_INTERVAL_S = 0.2
LOGGER = logging.getLogger(__name__)


def _variant_value(props: dict[str, Any], key: str) -> Any:
    variant = props.get(key)
    return None if variant is None else variant.value


class BlueZProvider:
    """Talks to bluetoothd directly: paired devices come from its object tree."""

    def __init__(self, *, timeout_s: float = 10.0, loop: LoopThread | None = None) -> None:
        self.timeout_s = timeout_s
        self._loop = loop or LoopThread(name="bleuart-bluez")
        self._bus: Any = None
        self._props_handlers: dict[str, tuple[Any, Any]] = {}
        self._interfaces: dict[tuple[str, str], Any] = {}

    def _run(self, coro: Any) -> Any:
        return self._loop.run(coro, timeout_s=self.timeout_s)

    async def _get_bus(self) -> Any:
        if self._bus is None:
            try:
                from dbus_next import BusType
                from dbus_next.aio import MessageBus
            except Exception as exc:  # pragma: no cover - import failure path
                raise TransportError(
                    "BlueZ transport requires 'dbus-next'. Install dependency and retry."
                ) from exc
            try:
                self._bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
            except Exception as exc:
                raise TransportError(f"Could not reach the system D-Bus: {exc}") from exc
        return self._bus

    async def _interface(self, path: str, interface: str) -> Any:
        cached = self._interfaces.get((path, interface))
        if cached is not None:
            return cached
        bus = await self._get_bus()
        introspection = await bus.introspect(BLUEZ_SERVICE_NAME, path)
        proxy = bus.get_proxy_object(BLUEZ_SERVICE_NAME, path, introspection)
        iface = proxy.get_interface(interface)
        self._interfaces[(path, interface)] = iface
        return iface

    async def _managed_objects(self) -> dict[str, dict[str, dict[str, Any]]]:
        object_manager = await self._interface("/", OBJECT_MANAGER_INTERFACE)
        return await object_manager.call_get_managed_objects()

    def list_devices(self) -> list[DeviceRecord]:
        async def _list() -> list[DeviceRecord]:
            objects = await self._managed_objects()
            devices: list[DeviceRecord] = []
            for path, interfaces in objects.items():
                props = interfaces.get(DEVICE_INTERFACE)
                if props is None:
                    continue
                devices.append(
                    DeviceRecord(
                        handle=path,
                        alias=_variant_value(props, "Alias"),
                        address=_variant_value(props, "Address"),
                        paired=bool(_variant_value(props, "Paired")),
                    )
                )
            return devices

        try:
            return self._run(_list())
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"BlueZ device enumeration failed: {exc}") from exc

    async def _wait_for_services_resolved(self, path: str) -> bool:
        props_iface = await self._interface(path, PROPERTIES_INTERFACE)
        deadline = time.monotonic() + self.timeout_s
        while time.monotonic() < deadline:
            resolved = await props_iface.call_get(DEVICE_INTERFACE, "ServicesResolved")
            if resolved.value:
                return True
            await asyncio.sleep(SERVICES_CHECK_INTERVAL_S)
        return False

    def connect(self, handle: Any) -> None:
        async def _connect() -> None:
            device = await self._interface(handle, DEVICE_INTERFACE)
            await device.call_connect()
            if not await self._wait_for_services_resolved(handle):
                raise TransportConnectError(f"Services of {handle} not resolved in {self.timeout_s}s")

        try:
            self._run(_connect())
        except TransportConnectError:
            raise
        except Exception as exc:
            raise TransportConnectError(f"BlueZ connect failed for {handle}: {exc}") from exc

    def disconnect(self, handle: Any) -> None:
        async def _disconnect() -> None:
            device = await self._interface(handle, DEVICE_INTERFACE)
            await device.call_disconnect()

        try:
            self._run(_disconnect())
        except Exception as exc:
            raise TransportError(f"BlueZ disconnect failed for {handle}: {exc}") from exc

    def list_characteristics(self, handle: Any) -> list[CharacteristicRecord]:
        prefix = f"{handle}/"

        async def _list() -> list[CharacteristicRecord]:
            objects = await self._managed_objects()
            records: list[CharacteristicRecord] = []
            for path, interfaces in objects.items():
                if not path.startswith(prefix):
                    continue
                props = interfaces.get(GATT_CHARACTERISTIC_INTERFACE)
                if props is None:
                    continue
                uuid = _variant_value(props, "UUID")
                if uuid:
                    records.append(CharacteristicRecord(uuid=uuid, handle=path))
            return records

        try:
            return self._run(_list())
        except Exception as exc:
            raise TransportError(f"BlueZ characteristic enumeration failed: {exc}") from exc

    def write(self, char_handle: Any, data: bytes) -> None:
        async def _write() -> None:
            char = await self._interface(char_handle, GATT_CHARACTERISTIC_INTERFACE)
            await char.call_write_value(bytes(data), {})

        try:
            self._run(_write())
        except Exception as exc:
            raise TransportError(f"BlueZ write to {char_handle} failed: {exc}") from exc

    async def _watch_properties(self, path: str, handler: Any) -> None:
        await self._unwatch_properties(path)
        props_iface = await self._interface(path, PROPERTIES_INTERFACE)
        props_iface.on_properties_changed(handler)
        self._props_handlers[path] = (props_iface, handler)

    async def _unwatch_properties(self, path: str) -> None:
        entry = self._props_handlers.pop(path, None)
        if entry is not None:
            props_iface, handler = entry
            props_iface.off_properties_changed(handler)

    def subscribe(self, char_handle: Any, on_change: ValueCallback) -> None:
        def _on_props_changed(interface: str, changed: dict[str, Any], _invalidated: list[str]) -> None:
            if interface != GATT_CHARACTERISTIC_INTERFACE or "Value" not in changed:
                return
            on_change(bytes(changed["Value"].value))

        async def _subscribe() -> None:
            await self._watch_properties(char_handle, _on_props_changed)
            char = await self._interface(char_handle, GATT_CHARACTERISTIC_INTERFACE)
            await char.call_start_notify()

        try:
            self._run(_subscribe())
        except Exception as exc:
            raise TransportError(f"BlueZ StartNotify on {char_handle} failed: {exc}") from exc

    def unsubscribe(self, char_handle: Any) -> None:
        async def _unsubscribe() -> None:
            await self._unwatch_properties(char_handle)
            char = await self._interface(char_handle, GATT_CHARACTERISTIC_INTERFACE)
            await char.call_stop_notify()

        try:
            self._run(_unsubscribe())
        except Exception as exc:
            raise TransportError(f"BlueZ StopNotify on {char_handle} failed: {exc}") from exc

    def watch_link(self, handle: Any, on_lost: LinkLostCallback | None) -> None:
        def _on_props_changed(interface: str, changed: dict[str, Any], _invalidated: list[str]) -> None:
            if interface != DEVICE_INTERFACE or "Connected" not in changed:
                return
            if not changed["Connected"].value:
                on_lost(f"{handle} reported Connected=false")

        try:
            if on_lost is None:
                self._run(self._unwatch_properties(handle))
            else:
                self._run(self._watch_properties(handle, _on_props_changed))
        except Exception as exc:
            raise TransportError(f"BlueZ link watch on {handle} failed: {exc}") from exc

    def close(self) -> None:
        if self._bus is not None:
            bus, self._bus = self._bus, None
            self._props_handlers.clear()
            self._interfaces.clear()
            self._loop.loop.call_soon_threadsafe(bus.disconnect)
        self._loop.stop()
