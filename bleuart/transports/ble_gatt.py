"""BLE GATT transport implementation using bleak."""

from __future__ import annotations

import logging
from typing import Any

from bleuart.core.errors import TransportConnectError, TransportError
from bleuart.core.model import CharacteristicRecord, DeviceRecord
from bleuart.transports.base import LinkLostCallback, ValueCallback
from bleuart.transports.eventloop import LoopThread

LOGGER = logging.getLogger(__name__)


def _bleak() -> Any:
    try:
        import bleak  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise TransportConnectError(
            "BLE transport requires 'bleak'. Install dependency and retry."
        ) from exc
    return bleak


class BleakProvider:
    """Cross-platform provider; device handles are addresses.

    Characteristic handles are ``(address, attribute_handle)`` pairs so writes can be
    routed to the owning client.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 10.0,
        scan_timeout_s: float = 5.0,
        write_with_response: bool = True,
        loop: LoopThread | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.scan_timeout_s = scan_timeout_s
        self.write_with_response = write_with_response
        self._loop = loop or LoopThread(name="bleuart-bleak")
        self._clients: dict[str, Any] = {}
        self._link_watchers: dict[str, LinkLostCallback] = {}

    def _run(self, coro: Any, timeout_s: float | None = None) -> Any:
        return self._loop.run(coro, timeout_s=timeout_s or self.timeout_s)

    def _client(self, address: str) -> Any:
        client = self._clients.get(address)
        if client is None or not client.is_connected:
            raise TransportError(f"No open BLE link to {address}")
        return client

    def _characteristic(self, char_handle: Any) -> tuple[Any, Any]:
        address, attr_handle = char_handle
        client = self._client(address)
        char = client.services.get_characteristic(attr_handle)
        if char is None:
            raise TransportError(f"Characteristic {attr_handle} vanished on {address}")
        return client, char

    def list_devices(self) -> list[DeviceRecord]:
        bleak = _bleak()

        async def _scan() -> list[DeviceRecord]:
            found = await bleak.BleakScanner.discover(timeout=self.scan_timeout_s)
            records: list[DeviceRecord] = []
            for device in found:
                details = device.details if isinstance(device.details, dict) else {}
                props = details.get("props", {})
                records.append(
                    DeviceRecord(
                        handle=device.address,
                        alias=props.get("Alias", device.name),
                        address=props.get("Address", device.address),
                        # Only BlueZ reports bonding state; elsewhere trust the platform list.
                        paired=bool(props.get("Paired", True)),
                    )
                )
            return records

        try:
            return self._run(_scan(), timeout_s=self.scan_timeout_s + self.timeout_s)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"BLE scan failed: {exc}") from exc

    def connect(self, handle: Any) -> None:
        bleak = _bleak()

        def _on_disconnect(_client: Any) -> None:
            on_lost = self._link_watchers.get(handle)
            if on_lost is not None:
                on_lost(f"{handle} disconnected")

        async def _connect() -> None:
            client = bleak.BleakClient(
                handle,
                disconnected_callback=_on_disconnect,
                timeout=self.timeout_s,
            )
            await client.connect()
            if not client.is_connected:
                raise TransportConnectError(f"BLE connect failed for {handle}")
            self._clients[handle] = client

        try:
            self._run(_connect())
        except TransportConnectError:
            raise
        except Exception as exc:
            raise TransportConnectError(f"BLE connect failed for {handle}: {exc}") from exc

    def disconnect(self, handle: Any) -> None:
        client = self._clients.pop(handle, None)
        if client is None:
            return
        try:
            self._run(client.disconnect())
        except Exception as exc:
            raise TransportError(f"BLE disconnect failed for {handle}: {exc}") from exc

    def list_characteristics(self, handle: Any) -> list[CharacteristicRecord]:
        client = self._client(handle)
        return [
            CharacteristicRecord(uuid=char.uuid, handle=(handle, char.handle))
            for service in client.services
            for char in service.characteristics
        ]

    def write(self, char_handle: Any, data: bytes) -> None:
        client, char = self._characteristic(char_handle)
        try:
            self._run(client.write_gatt_char(char, bytes(data), response=self.write_with_response))
        except Exception as exc:
            raise TransportError(f"BLE GATT write failed: {exc}") from exc

    def subscribe(self, char_handle: Any, on_change: ValueCallback) -> None:
        client, char = self._characteristic(char_handle)

        def _notify_handler(_: Any, data: bytearray) -> None:
            on_change(bytes(data))

        try:
            self._run(client.start_notify(char, _notify_handler))
        except Exception as exc:
            raise TransportError(f"BLE start_notify failed: {exc}") from exc

    def unsubscribe(self, char_handle: Any) -> None:
        client, char = self._characteristic(char_handle)
        try:
            self._run(client.stop_notify(char))
        except Exception as exc:
            raise TransportError(f"BLE stop_notify failed: {exc}") from exc

    def watch_link(self, handle: Any, on_lost: LinkLostCallback | None) -> None:
        if on_lost is None:
            self._link_watchers.pop(handle, None)
        else:
            self._link_watchers[handle] = on_lost

    def close(self) -> None:
        for address in list(self._clients):
            try:
                self.disconnect(address)
            except TransportError as exc:
                LOGGER.warning("Ignoring disconnect failure during close: %s", exc)
        self._loop.stop()
