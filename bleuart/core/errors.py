"""Domain-specific errors for bleuart."""


class BleUartError(Exception):
    """Base error for bleuart."""


class ConfigLoadError(BleUartError):
    """Raised when a settings file cannot be read."""


class ConfigValidationError(BleUartError):
    """Raised when settings do not conform to schema or semantics."""


class DeviceNotFoundError(BleUartError):
    """Raised when no paired device carries the requested alias."""


class CharacteristicNotFoundError(BleUartError):
    """Raised when the TX or RX characteristic is missing on a device."""


class NotConnectedError(BleUartError):
    """Raised when an operation needs an established session."""


class SendError(BleUartError):
    """Raised when a chunk write fails; earlier chunks may have been delivered."""

    def __init__(self, message: str, *, chunks_sent: int = 0) -> None:
        super().__init__(message)
        self.chunks_sent = chunks_sent


class TransportError(BleUartError):
    """Base transport error, also raised when device discovery fails."""


class TransportConnectError(TransportError):
    """Raised when the link to a device cannot be established."""


class NotifySubscribeError(TransportError):
    """Raised when RX notifications cannot be enabled."""
