"""Unit tests for the typed configuration schema helpers."""

from __future__ import annotations

import pytest

from edgefilter.config import store as config_store
from edgefilter.config.schema import (
    PLUGIN_NAME,
    FilterConfig,
    WebAPISettings,
    category_value,
    default_category,
    parse_category,
    reconfiguration_updates,
)


def test_filter_config_defaults():
    config = FilterConfig.from_mapping({})

    assert config.enable is False
    assert config.code == ""
    assert config.name == PLUGIN_NAME
    assert config.preload == []


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("True", True), ("1", True), ("false", False), ("no", False), (True, True), ("maybe", False)],
)
def test_filter_config_parses_enable(raw, expected):
    assert FilterConfig.from_mapping({"enable": raw}).enable is expected


def test_filter_config_keeps_code_indentation():
    code = "if reading['v'] > 1:\n    reading = {}\n"

    assert FilterConfig.from_mapping({"code": code}).code == code


def test_filter_config_rejects_non_text_code():
    with pytest.raises(ValueError, match="texto"):
        FilterConfig.from_mapping({"code": 5})


def test_filter_config_parses_preload_list_and_string():
    assert FilterConfig.from_mapping({"preload": "math, os.path"}).preload == ["math", "os.path"]
    assert FilterConfig.from_mapping({"preload": ["json", " re "]}).preload == ["json", "re"]


def test_filter_config_rejects_invalid_module_name():
    with pytest.raises(ValueError, match="nombre de módulo inválido"):
        FilterConfig.from_mapping({"preload": ["os/path"]})


def test_filter_config_rejects_empty_name():
    with pytest.raises(ValueError, match="'name' no puede estar vacío"):
        FilterConfig.from_mapping({"name": "  "})


def test_from_category_requires_code():
    with pytest.raises(ValueError, match="'code' es obligatorio"):
        FilterConfig.from_category({"enable": {"value": "true"}})


def test_from_category_reads_host_items():
    config = FilterConfig.from_category(
        {
            "enable": {"value": "true", "default": "false"},
            "code": {"default": "reading = {}"},
            "preload": {"value": "math"},
        },
        name="scale",
    )

    assert config == FilterConfig(enable=True, code="reading = {}", name="scale", preload=["math"])


def test_category_value_variants():
    category = {"a": {"value": "1", "default": "2"}, "b": {"default": "2"}, "c": "plain", "d": {}}

    assert category_value(category, "a") == "1"
    assert category_value(category, "b") == "2"
    assert category_value(category, "c") == "plain"
    assert category_value(category, "d") is None
    assert category_value(category, "missing", "fallback") == "fallback"
    with pytest.raises(KeyError):
        category_value(category, "missing")


def test_parse_category_accepts_json_and_mappings():
    assert parse_category('{"enable": {"value": "true"}}') == {"enable": {"value": "true"}}
    assert parse_category(b"") == {}
    assert parse_category({"code": "pass"}) == {"code": "pass"}


@pytest.mark.parametrize("payload", ["{invalid", "[1, 2]"])
def test_parse_category_rejects_invalid_payloads(payload):
    with pytest.raises(ValueError):
        parse_category(payload)


def test_reconfiguration_updates_only_reports_present_items():
    assert reconfiguration_updates({}) == {}
    assert reconfiguration_updates({"enable": {"value": "True"}}) == {"enable": True}
    assert reconfiguration_updates({"code": {"value": "pass"}, "other": 1}) == {"code": "pass"}


def test_default_category_items():
    category = default_category()

    assert category["plugin"]["default"] == PLUGIN_NAME
    assert category["enable"]["type"] == "boolean"
    assert category["code"]["type"] == "code"


def test_store_roundtrip(tmp_path):
    path = tmp_path / "config" / "filter.yaml"
    config = FilterConfig(enable=True, code="reading = {}\n", name="drop-all", preload=["math"])

    config_store.save_filter_config(config, path)

    assert config_store.load_filter_config(path) == config


def test_store_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_store.load_filter_config(tmp_path / "filter.yaml")


def test_store_rejects_non_mapping(tmp_path):
    path = tmp_path / "filter.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Expected a mapping"):
        config_store.load_filter_config(path)


def test_shipped_configuration_is_valid():
    config = config_store.load_filter_config()

    assert config.enable is False
    assert "user_data" in config.code
    assert config.name == PLUGIN_NAME


def test_default_filter_config_is_disabled():
    config = config_store.default_filter_config()

    assert config.enable is False
    assert config.code


def test_webapi_settings_defaults_and_validation():
    settings = WebAPISettings.from_mapping({})

    assert settings == WebAPISettings()
    assert settings.auth_enabled is False
    with pytest.raises(ValueError, match="port"):
        WebAPISettings.from_mapping({"port": 0})
    with pytest.raises(ValueError, match="entero"):
        WebAPISettings.from_mapping({"port": "http"})
    with pytest.raises(ValueError, match="log_level"):
        WebAPISettings.from_mapping({"log_level": "verbose"})


def test_webapi_settings_environment_wins():
    settings = WebAPISettings.from_mapping({"port": 8100, "token": "yaml"}).with_environment(
        {
            "EDGEFILTER_WEBAPI_PORT": "8200",
            "EDGEFILTER_WEBAPI_TOKEN": "env",
            "EDGEFILTER_WEBAPI_RELOAD": "yes",
            "EDGEFILTER_WEBAPI_HOST": "",
        }
    )

    assert settings.port == 8200
    assert settings.token == "env"
    assert settings.reload is True
    assert settings.host == "0.0.0.0"
    assert settings.auth_enabled is True


def test_load_webapi_settings(tmp_path):
    path = tmp_path / "webapi.yaml"
    path.write_text("token_file: /run/secrets/token\nlog_level: DEBUG\n", encoding="utf-8")

    settings = config_store.load_webapi_settings(path, environ={})

    assert settings.token_file == "/run/secrets/token"
    assert settings.log_level == "debug"
    assert config_store.load_webapi_settings(tmp_path / "missing.yaml", environ={}) == WebAPISettings()


def test_shipped_webapi_settings_disable_auth():
    assert config_store.load_webapi_settings(environ={}).auth_enabled is False
