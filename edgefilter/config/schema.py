"""Typed configuration models implemented with dataclasses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

PLUGIN_NAME = "simple-python"

_MISSING = object()


def _as_str(value: Any, field_name: str, *, optional: bool = False) -> Optional[str]:
    if value is None:
        if optional:
            return None
        raise ValueError(f"'{field_name}' es obligatorio")
    text = str(value).strip()
    if not text and not optional:
        raise ValueError(f"'{field_name}' no puede estar vacío")
    return text or None


def _as_code(value: Any, field_name: str) -> str:
    # El código se conserva tal cual: la indentación es significativa.
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if not isinstance(value, str):
        raise ValueError(f"'{field_name}' debe ser texto")
    return value


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "si", "sí"}:
        return True
    if text in {"0", "false", "no"}:
        return False
    return default


def _as_int(value: Any, field_name: str) -> int:
    if value is None:
        raise ValueError(f"'{field_name}' es obligatorio")
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' debe ser un entero válido") from exc
    return result


def _as_module_list(value: Any, field_name: str) -> List[str]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        names = [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(value, Sequence):
        names = [str(item).strip() for item in value if str(item).strip()]
    else:
        raise ValueError(f"{field_name} debe ser una lista o cadena")
    for name in names:
        if not all(part.isidentifier() for part in name.split(".")):
            raise ValueError(f"{field_name}: nombre de módulo inválido '{name}'")
    return names


def category_value(category: Mapping[str, Any], item: str, default: Any = _MISSING) -> Any:
    """Return the effective value of a configuration category item.

    Items may be plain values or host-style dicts carrying ``value`` and/or
    ``default``. ``default`` is returned (or ``KeyError`` raised) when the
    item is absent.
    """

    if item not in category:
        if default is _MISSING:
            raise KeyError(item)
        return default
    raw = category[item]
    if isinstance(raw, Mapping):
        if "value" in raw:
            return raw["value"]
        if "default" in raw:
            return raw["default"]
        return None
    return raw


def parse_category(payload: Union[str, bytes, Mapping[str, Any]]) -> Dict[str, Any]:
    """Decode a raw configuration blob (JSON text or mapping) into a dict."""

    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError(f"Configuración inválida: {exc}") from exc
    else:
        data = payload
    if not isinstance(data, Mapping):
        raise ValueError(
            f"La configuración debe ser un objeto, se recibió {type(data).__name__}"
        )
    return dict(data)


def reconfiguration_updates(category: Mapping[str, Any]) -> Dict[str, Any]:
    """Extract the ``enable``/``code`` items present in a new category."""

    updates: Dict[str, Any] = {}
    if "code" in category:
        updates["code"] = _as_code(category_value(category, "code"), "code")
    if "enable" in category:
        updates["enable"] = _as_bool(category_value(category, "enable"), False)
    return updates


@dataclass
class FilterConfig:
    enable: bool = False
    code: str = ""
    name: str = PLUGIN_NAME
    preload: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FilterConfig":
        enable = _as_bool(data.get("enable"), False)
        code = _as_code(data.get("code"), "code")
        name = _as_str(data.get("name", PLUGIN_NAME), "name")
        preload = _as_module_list(data.get("preload"), "preload")
        return cls(enable=enable, code=code, name=name, preload=preload)

    @classmethod
    def from_category(cls, category: Mapping[str, Any], *, name: Optional[str] = None) -> "FilterConfig":
        """Build the configuration from a host configuration category.

        The ``code`` item is mandatory: a category without it cannot set up
        the filter.
        """

        if "code" not in category:
            raise ValueError("'code' es obligatorio")
        payload: Dict[str, Any] = {
            "enable": category_value(category, "enable", False),
            "code": category_value(category, "code"),
            "preload": category_value(category, "preload", None),
            "name": name or category_value(category, "name", PLUGIN_NAME),
        }
        return cls.from_mapping(payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enable": self.enable,
            "code": self.code,
            "name": self.name,
            "preload": list(self.preload),
        }


_LOG_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}

# Variables de entorno que prevalecen sobre webapi.yaml.
WEBAPI_ENV_VARS = {
    "host": "EDGEFILTER_WEBAPI_HOST",
    "port": "EDGEFILTER_WEBAPI_PORT",
    "reload": "EDGEFILTER_WEBAPI_RELOAD",
    "log_level": "EDGEFILTER_WEBAPI_LOG_LEVEL",
    "token": "EDGEFILTER_WEBAPI_TOKEN",
    "token_file": "EDGEFILTER_WEBAPI_TOKEN_FILE",
}


@dataclass
class WebAPISettings:
    """Bind address and access token of the filter web API."""

    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    token: Optional[str] = None
    token_file: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "WebAPISettings":
        host = _as_str(data.get("host", "0.0.0.0"), "host")
        port = _as_int(data.get("port", 8000), "port")
        if not 0 < port < 65536:
            raise ValueError("port debe estar entre 1 y 65535")
        log_level = _as_str(data.get("log_level", "info"), "log_level").lower()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level inválido: {log_level}")
        return cls(
            host=host,
            port=port,
            reload=_as_bool(data.get("reload"), False),
            log_level=log_level,
            token=_as_str(data.get("token"), "token", optional=True),
            token_file=_as_str(data.get("token_file"), "token_file", optional=True),
        )

    def with_environment(self, environ: Mapping[str, str]) -> "WebAPISettings":
        """Return a copy where the non-empty ``EDGEFILTER_WEBAPI_*`` variables win."""

        payload = self.to_dict()
        for field_name, variable in WEBAPI_ENV_VARS.items():
            value = environ.get(variable)
            if value:
                payload[field_name] = value
        return self.from_mapping(payload)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.token or self.token_file)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level,
            "token": self.token,
            "token_file": self.token_file,
        }


def default_category() -> Dict[str, Dict[str, str]]:
    """Default configuration category advertised by the plugin descriptor."""

    return {
        "plugin": {
            "description": "Simple Python filter plugin",
            "type": "string",
            "default": PLUGIN_NAME,
            "readonly": "true",
        },
        "enable": {
            "description": "A switch that can be used to enable or disable execution of the Simple Python filter.",
            "type": "boolean",
            "displayName": "Enabled",
            "default": "false",
        },
        "code": {
            "description": "Python code to execute",
            "type": "code",
            "displayName": "Python code",
            "default": "",
            "order": "1",
        },
        "preload": {
            "description": "Comma separated list of modules imported into the shared scope",
            "type": "string",
            "displayName": "Preload modules",
            "default": "",
            "order": "2",
        },
    }
