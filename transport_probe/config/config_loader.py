"""
YAML configuration loader.

Every *.yml file in the config directory is merged, in name order, over the
built-in defaults.
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

from transport_probe.probing.verdict import PROBE_PAYLOAD
from transport_probe.registry.protocol_registry import DEFAULT_TRANSPORTS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "endpoint": "/echo",
    "transports": list(DEFAULT_TRANSPORTS),
    "probe": {
        "payload": PROBE_PAYLOAD,
        "timeout": 10.0,
    },
    "session": {
        "enabled": ["xhr-streaming", "xhr-polling"],
        "greetings": ["Ohai!", "Second send"],
        "close_timeout": 2.0,
    },
    "environment": {
        "default": {"behaviour": "echo"},
        "transports": {},
        "endpoints": {},
    },
}


class ConfigError(ValueError):
    """Raised for configuration that cannot be used."""


def deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigLoader:
    def __init__(self, config_dir: str | Path = "config"):
        self.config_dir = Path(config_dir)

    def load_file(self, path: str | Path) -> dict:
        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        return data

    def load_all(self) -> dict:
        config = copy.deepcopy(DEFAULT_CONFIG)

        if not self.config_dir.is_dir():
            logger.debug("No config directory at %s, using defaults", self.config_dir)
            return config

        for path in sorted(self.config_dir.glob("*.yml")):
            try:
                config = deep_merge(config, self.load_file(path))
            except yaml.YAMLError as e:
                raise ConfigError(f"{path}: {e}") from e
            logger.debug("Loaded config from %s", path)

        validate(config)
        return config


def validate(config: dict) -> None:
    for section in ("probe", "session", "environment"):
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"'{section}' must be a mapping, got {config[section]!r}")

    transports = config.get("transports")
    if not isinstance(transports, list) or not transports:
        raise ConfigError("'transports' must be a non-empty list")

    seen = set()
    for name in transports:
        if not isinstance(name, str) or not name:
            raise ConfigError(f"'transports' entries must be non-empty strings, got {name!r}")
        if name in seen:
            raise ConfigError(f"'transports' lists {name!r} twice")
        seen.add(name)

    timeout = config.get("probe", {}).get("timeout")
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigError(f"'probe.timeout' must be a positive number, got {timeout!r}")

    unknown = set(config.get("session", {}).get("enabled") or []) - seen
    if unknown:
        raise ConfigError(f"'session.enabled' names unknown transports: {sorted(unknown)}")
