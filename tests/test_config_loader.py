from __future__ import annotations

from pathlib import Path

import pytest

from bleuart.core.config_loader import load_settings, user_config_path
from bleuart.core.errors import ConfigLoadError, ConfigValidationError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_packaged_defaults() -> None:
    settings = load_settings()
    assert settings.tx_uuid == "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
    assert settings.rx_uuid == "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
    assert settings.chunk_size == 19
    assert settings.pacing_s == pytest.approx(0.002)
    assert settings.transport == "bluez"
    assert settings.reconnect.max_attempts == 3


def test_user_file_is_merged_over_defaults() -> None:
    _write(
        user_config_path(),
        """
framing:
  chunk_size: 180
transport:
  type: bleak
reconnect:
  max_attempts: 5
""",
    )

    settings = load_settings()

    assert settings.chunk_size == 180
    assert settings.pacing_s == pytest.approx(0.002)
    assert settings.transport == "bleak"
    assert settings.reconnect.max_attempts == 5
    assert settings.reconnect.backoff_s == 1.0


def test_explicit_path_normalizes_uuids(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "custom.yaml",
        """
uart:
  tx_uuid: 0000FFE1-0000-1000-8000-00805F9B34FB
  rx_uuid: 0000FFE2-0000-1000-8000-00805F9B34FB
""",
    )

    settings = load_settings(path)

    assert settings.tx_uuid == "0000ffe1-0000-1000-8000-00805f9b34fb"
    assert settings.rx_uuid == "0000ffe2-0000-1000-8000-00805f9b34fb"


def test_missing_explicit_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_settings(tmp_path / "absent.yaml")


def test_unknown_key_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.yaml", "framing:\n  chunk_bytes: 20\n")
    with pytest.raises(ConfigValidationError, match="framing"):
        load_settings(path)


def test_duplicate_key_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "dup.yaml", "framing:\n  chunk_size: 20\n  chunk_size: 30\n")
    with pytest.raises(ConfigValidationError, match="Duplicate key"):
        load_settings(path)


def test_invalid_uuid_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "uuid.yaml", "uart:\n  tx_uuid: not-a-uuid\n  rx_uuid: 2a00\n")
    with pytest.raises(ConfigValidationError, match="uart.tx_uuid"):
        load_settings(path)


def test_identical_roles_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "same.yaml", "uart:\n  tx_uuid: ffe1\n  rx_uuid: FFE1\n")
    with pytest.raises(ConfigValidationError, match="must differ"):
        load_settings(path)


def test_unknown_encoding_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "enc.yaml", "framing:\n  encoding: klingon-8\n")
    with pytest.raises(ConfigValidationError, match="codec"):
        load_settings(path)


def test_unsupported_transport_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "transport.yaml", "transport:\n  type: serial\n")
    with pytest.raises(ConfigValidationError):
        load_settings(path)
