"""Configuration schema and persistence helpers for the simple-python filter."""

from .schema import (
    PLUGIN_NAME,
    FilterConfig,
    WebAPISettings,
    category_value,
    default_category,
    parse_category,
    reconfiguration_updates,
)
from .store import (
    default_filter_config,
    load_filter_config,
    load_webapi_settings,
    save_filter_config,
)

__all__ = [
    "PLUGIN_NAME",
    "FilterConfig",
    "WebAPISettings",
    "category_value",
    "default_category",
    "default_filter_config",
    "load_filter_config",
    "load_webapi_settings",
    "parse_category",
    "reconfiguration_updates",
    "save_filter_config",
]
