"""Typer CLI entrypoint."""

from __future__ import annotations

import dataclasses
import logging
import queue
import sys
import threading
import time
from pathlib import Path
from typing import IO

import typer

from bleuart.api import Client
from bleuart.core.config_loader import load_settings
from bleuart.core.dispatcher import SessionListener
from bleuart.core.errors import BleUartError
from bleuart.core.model import ConnectionState, SessionInfo

POLL_INTERVAL_S = 0.02

app = typer.Typer(help="Line-oriented serial terminal for paired BLE UART peripherals")


class TerminalListener(SessionListener):
    def on_connected(self, context: SessionInfo) -> None:
        typer.echo(f"Connected to {context.device.alias} [{context.device.address}]")

    def on_disconnected(self, reason: str, is_failure: bool) -> None:
        prefix = "Connection lost" if is_failure else "Disconnected"
        typer.echo(f"{prefix}: {reason}", err=is_failure)

    def on_error(self, message: str, state: ConnectionState) -> None:
        typer.echo(f"Error: {message}", err=True)

    def on_message(self, text: str) -> None:
        typer.echo(f"< {text}")


def _build_client(ctx: typer.Context, listener: SessionListener | None = None) -> Client:
    options = ctx.obj or {}
    settings = load_settings(options.get("config"))
    if options.get("transport"):
        settings = dataclasses.replace(settings, transport=options["transport"])
    return Client(settings=settings, listener=listener)


def _read_lines(stream: IO[str], lines: queue.Queue[str | None]) -> None:
    for line in stream:
        lines.put(line.rstrip("\r\n"))
    lines.put(None)


def _as_line(text: str) -> str:
    return text if text.endswith("\n") else f"{text}\n"


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Settings YAML file"),
    transport: str | None = typer.Option(None, "--transport", help="Provider: bluez or bleak"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"config": config, "transport": transport}


@app.command("devices")
def list_devices(ctx: typer.Context) -> None:
    """List paired Bluetooth devices.

    With --transport bleak only BlueZ reports bonding state; on other platforms every
    discovered device is listed.
    """
    try:
        client = _build_client(ctx)
        try:
            devices = client.list_paired_devices()
        finally:
            client.close()
        if not devices:
            typer.echo("No paired devices found")
            return

        for device in devices:
            typer.echo(f" - {device.alias} [{device.address}]")
    except BleUartError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("connect")
def connect(
    ctx: typer.Context,
    alias: str,
    keep: bool = typer.Option(False, "--keep", help="Reconnect automatically if the link drops"),
    quit_word: str = typer.Option("q", "--quit-word", help="Line that ends the session"),
) -> None:
    """Open an interactive session; each typed line is sent with a trailing newline."""
    try:
        client = _build_client(ctx, TerminalListener())
    except BleUartError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    try:
        if not client.connect(alias, keep_connection=keep):
            raise typer.Exit(code=1)

        typer.echo(f"Type lines to send to {alias}. Type '{quit_word}' to quit.")
        lines: queue.Queue[str | None] = queue.Queue()
        threading.Thread(target=_read_lines, args=(sys.stdin, lines), daemon=True).start()
        while True:
            client.process_callbacks()
            try:
                line = lines.get(timeout=POLL_INTERVAL_S)
            except queue.Empty:
                continue
            if line is None or line == quit_word:
                break
            client.send(_as_line(line))
        client.process_callbacks()
    finally:
        client.close()


@app.command("send")
def send(
    ctx: typer.Context,
    alias: str,
    text: str,
    wait: float = typer.Option(0.0, "--wait", help="Seconds to print replies before disconnecting"),
) -> None:
    """Send one line to a device and optionally print replies."""
    try:
        client = _build_client(ctx, TerminalListener())
    except BleUartError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    try:
        if not client.connect(alias):
            raise typer.Exit(code=1)
        if not client.send(_as_line(text)):
            raise typer.Exit(code=1)

        deadline = time.monotonic() + wait
        while time.monotonic() < deadline:
            client.process_callbacks()
            time.sleep(POLL_INTERVAL_S)
        client.process_callbacks()
    finally:
        client.close()


def run() -> None:
    app()


if __name__ == "__main__":
    run()
