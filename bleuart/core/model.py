"""Core data models used across registry, connection manager, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    RESOLVING_CHARACTERISTICS = "resolving_characteristics"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(frozen=True)
class PairedDevice:
    alias: str
    address: str
    path: Any


@dataclass(frozen=True)
class DeviceRecord:
    """One device row as enumerated by a provider, before filtering."""

    handle: Any
    alias: str | None
    address: str | None
    paired: bool


@dataclass(frozen=True)
class CharacteristicRecord:
    uuid: str
    handle: Any


@dataclass(frozen=True)
class CharacteristicHandles:
    tx: Any
    rx: Any


@dataclass(frozen=True)
class SessionInfo:
    device: PairedDevice
    handles: CharacteristicHandles


@dataclass(frozen=True)
class ReconnectPolicy:
    max_attempts: int = 3
    backoff_s: float = 1.0
    max_backoff_s: float = 8.0

    def delay_for(self, attempt: int) -> float:
        return min(self.backoff_s * (2**attempt), self.max_backoff_s)


@dataclass(frozen=True)
class Settings:
    tx_uuid: str = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
    rx_uuid: str = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
    chunk_size: int = 19
    pacing_s: float = 0.002
    encoding: str = "utf-8"
    transport: str = "bluez"
    timeout_s: float = 10.0
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)
