"""Load PressureConfig from pressure.yaml or pressure.toml if present.

Merges file config with keyword overrides. Overrides take precedence.
Legacy option names are accepted and mapped onto the canonical fields.
"""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from pressure._errors import ConfigError
from pressure.config import PressureConfig

# Older names still accepted for the worker delays.
OPTION_ALIASES: dict[str, str] = {
    "poll_interval": "read_worker_delay",
    "incoming_monitor_delay": "read_worker_delay",
    "websocket_worker_delay": "broadcast_worker_delay",
}

CONFIG_FIELDS: frozenset[str] = frozenset(f.name for f in fields(PressureConfig))


def normalize_options(options: dict[str, Any]) -> dict[str, Any]:
    """Map legacy aliases onto canonical option names.

    The canonical name wins when both it and an alias are given.

    Raises:
        ConfigError: If an option is not recognized.

    """
    result: dict[str, Any] = {}
    for key, value in options.items():
        if key in CONFIG_FIELDS:
            result[key] = value
            continue
        canonical = OPTION_ALIASES.get(key)
        if canonical is None:
            msg = f"Unknown pressure option: {key!r}"
            raise ConfigError(msg)
        if canonical not in options:
            result.setdefault(canonical, value)
    return result


def load_config(root: Path | str, **overrides: Any) -> PressureConfig:
    """Load PressureConfig from root, optionally merging pressure.yaml.

    Looks for pressure.yaml, pressure.yml, or pressure.toml in root. If found,
    loads and merges with overrides. Overrides take precedence.
    """
    file_config = _read_pressure_config(Path(root))
    merged = {**normalize_options(file_config), **normalize_options(overrides)}
    return PressureConfig(**merged)


def _read_pressure_config(root: Path) -> dict[str, Any]:
    """Read pressure config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("pressure.yaml", "pressure.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "pressure.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Could not read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _extract_pressure_section(data, path)


def _parse_toml(path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Could not read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _extract_pressure_section(data, path)


def _extract_pressure_section(data: object, path: Path) -> dict[str, Any]:
    """Extract pressure.* keys and recognized top-level keys into one dict."""
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping at the top level"
        raise ConfigError(msg)
    known = CONFIG_FIELDS | frozenset(OPTION_ALIASES)
    result: dict[str, Any] = {
        k: v for k, v in data.items() if k != "pressure" and k in known
    }
    section = data.get("pressure")
    if section is not None:
        if not isinstance(section, dict):
            msg = f"'pressure' section in {path.name} must be a mapping"
            raise ConfigError(msg)
        result.update(section)
    return result
