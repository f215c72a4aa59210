from __future__ import annotations

from bleuart.api import CallbackListener, Client, ConnectionState, Settings


def test_public_client_session(provider) -> None:
    received: list[str] = []
    client = Client(
        provider=provider,
        settings=Settings(pacing_s=0.0),
        listener=CallbackListener(on_message=received.append),
    )

    assert [d.alias for d in client.list_paired_devices()] == ["BBC micro:bit"]
    assert client.connect("BBC micro:bit") is True
    assert client.state is ConnectionState.CONNECTED

    assert client.send("ping\n") is True
    assert provider.writes[0][1] == b"ping\n"

    provider.notify(b"pong\r\n")
    assert client.process_callbacks() == 1
    assert received == ["pong"]

    client.close()
    assert client.state is ConnectionState.DISCONNECTED
    assert provider.closed


def test_public_client_loads_settings_when_not_given(provider) -> None:
    client = Client(provider=provider)
    assert client.settings.chunk_size == 19
    assert client.connect("missing") is False
    assert client.last_error is not None
