"""TX/RX characteristic lookup on a connected device."""

from __future__ import annotations

import logging
from typing import Any

from bleuart.core.errors import CharacteristicNotFoundError
from bleuart.core.model import CharacteristicHandles
from bleuart.transports.base import Provider

LOGGER = logging.getLogger(__name__)


class CharacteristicResolver:
    def __init__(self, tx_uuid: str, rx_uuid: str) -> None:
        self.tx_uuid = tx_uuid.lower()
        self.rx_uuid = rx_uuid.lower()

    def resolve(self, provider: Provider, device_handle: Any) -> CharacteristicHandles:
        tx: Any = None
        rx: Any = None
        for record in provider.list_characteristics(device_handle):
            uuid = record.uuid.lower()
            if uuid == self.tx_uuid and tx is None:
                tx = record.handle
            elif uuid == self.rx_uuid and rx is None:
                rx = record.handle

        missing = [role for role, handle in (("TX", tx), ("RX", rx)) if handle is None]
        if missing:
            raise CharacteristicNotFoundError(
                f"{' and '.join(missing)} characteristic not found on {device_handle}"
            )
        LOGGER.debug("Resolved TX=%s RX=%s", tx, rx)
        return CharacteristicHandles(tx=tx, rx=rx)
