"""Helpers to load, validate and persist the filter configuration file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .schema import FilterConfig, WebAPISettings

CONFIG_DIR = Path(__file__).resolve().parent


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at {path}, found {type(data).__name__}")
    return data


def _write_yaml(path: Path, payload: Mapping[str, Any]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(dict(payload), fh, sort_keys=False, allow_unicode=True)


def load_filter_config(path: Optional[Path] = None) -> FilterConfig:
    """Read and validate the filter configuration from filter.yaml."""

    cfg_path = path or CONFIG_DIR / "filter.yaml"
    raw = _read_yaml(cfg_path)
    return FilterConfig.from_mapping(raw)


def save_filter_config(config: FilterConfig, path: Optional[Path] = None):
    """Persist the filter configuration to filter.yaml."""

    cfg_path = path or CONFIG_DIR / "filter.yaml"
    _write_yaml(cfg_path, config.to_dict())


def default_filter_config() -> FilterConfig:
    """Return a disabled template configuration with an example program."""

    payload = {
        "enable": False,
        "code": "reading[b'value'] = reading.get(b'value', 0)\n",
    }
    return FilterConfig.from_mapping(payload)


def load_webapi_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WebAPISettings:
    """Read webapi.yaml (defaults when absent) and apply the environment overrides."""

    cfg_path = path or CONFIG_DIR / "webapi.yaml"
    try:
        raw = _read_yaml(cfg_path)
    except FileNotFoundError:
        raw = {}
    settings = WebAPISettings.from_mapping(raw)
    return settings.with_environment(os.environ if environ is None else environ)
