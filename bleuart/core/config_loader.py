"""Settings loading and validation for YAML-based bleuart configuration."""

from __future__ import annotations

import codecs
import json
import logging
import os
import re
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from bleuart.core.errors import ConfigLoadError, ConfigValidationError
from bleuart.core.model import ReconnectPolicy, Settings

_UUID_RE = re.compile(r"^[0-9a-f]{4}$|^[0-9a-f]{8}$|^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("bleuart.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "bleuart/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read settings file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Settings file {path} must contain a mapping at root")
    return loaded


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _normalize_uuid(value: str, *, context: str) -> str:
    normalized = value.strip().lower()
    if not _UUID_RE.match(normalized):
        raise ConfigValidationError(
            f"{context} must be a 16-bit, 32-bit, or 128-bit UUID string"
        )
    return normalized


def _normalize_encoding(value: str) -> str:
    try:
        return codecs.lookup(value).name
    except LookupError as exc:
        raise ConfigValidationError(f"framing.encoding '{value}' is not a known codec") from exc


def build_settings(doc: dict[str, Any], source: str = "<settings>") -> Settings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Settings()
    uart = doc.get("uart", {})
    framing = doc.get("framing", {})
    transport = doc.get("transport", {})
    reconnect = doc.get("reconnect", {})

    tx_uuid = _normalize_uuid(uart.get("tx_uuid", defaults.tx_uuid), context="uart.tx_uuid")
    rx_uuid = _normalize_uuid(uart.get("rx_uuid", defaults.rx_uuid), context="uart.rx_uuid")
    if tx_uuid == rx_uuid:
        raise ConfigValidationError("uart.tx_uuid and uart.rx_uuid must differ")

    return Settings(
        tx_uuid=tx_uuid,
        rx_uuid=rx_uuid,
        chunk_size=int(framing.get("chunk_size", defaults.chunk_size)),
        pacing_s=float(framing.get("pacing_ms", defaults.pacing_s * 1000.0)) / 1000.0,
        encoding=_normalize_encoding(framing.get("encoding", defaults.encoding)),
        transport=transport.get("type", defaults.transport),
        timeout_s=float(transport.get("timeout_s", defaults.timeout_s)),
        reconnect=ReconnectPolicy(
            max_attempts=int(reconnect.get("max_attempts", defaults.reconnect.max_attempts)),
            backoff_s=float(reconnect.get("backoff_s", defaults.reconnect.backoff_s)),
            max_backoff_s=float(reconnect.get("max_backoff_s", defaults.reconnect.max_backoff_s)),
        ),
    )


def load_settings(path: Path | None = None) -> Settings:
    """Load packaged defaults, then merge the user (or explicit) settings file over them.

    An explicit ``path`` must exist; the implicit XDG location is optional.
    """
    packaged = resources.files("bleuart.config").joinpath("default.yaml")
    doc = _read_yaml(packaged)
    source = str(packaged)

    override_path = path if path is not None else user_config_path()
    if path is not None or override_path.is_file():
        doc = _merge(doc, _read_yaml(override_path))
        source = str(override_path)
        LOGGER.debug("Merged settings from %s", override_path)

    return build_settings(doc, source)
