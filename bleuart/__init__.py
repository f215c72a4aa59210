"""Newline-delimited serial messaging over a BLE UART peripheral."""

__version__ = "0.1.0"
