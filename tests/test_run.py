"""Tests for the command line batch runner."""

from __future__ import annotations

import json

from edgefilter.config.schema import FilterConfig
from edgefilter.core import run


def _write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_filter_records_applies_code():
    config = FilterConfig(enable=True, code="reading['temperature'] = reading['temperature'] + 1")

    output = run.filter_records(
        config,
        [
            {"asset_code": "TI1", "reading": {"temperature": 23}},
            {"asset_code": "TI2", "reading": {"temperature": 30}, "user_ts": "2024-01-01 00:00:00"},
        ],
    )

    assert output == [
        {"asset_code": "TI1", "reading": {"temperature": 24}},
        {"asset_code": "TI2", "reading": {"temperature": 31}, "user_ts": "2024-01-01 00:00:00"},
    ]


def test_filter_records_disabled_passthrough():
    records = [{"asset_code": "TI1", "reading": {"temperature": 23}}]

    assert run.filter_records(FilterConfig(enable=False, code="reading = {}"), records) == records


def test_main_reads_and_writes_files(tmp_path):
    config_path = tmp_path / "filter.yaml"
    config_path.write_text("enable: false\ncode: \"reading = {}\"\n", encoding="utf-8")
    input_path = _write_json(
        tmp_path / "in.json",
        {"readings": [{"asset_code": "A", "reading": {"v": 0}}, {"asset_code": "B", "reading": {"v": 2}}]},
    )
    output_path = tmp_path / "out" / "result.json"

    code = run.main(
        [
            "--config",
            str(config_path),
            "--code",
            "if reading['v'] == 0:\n    reading = {}\n",
            "--enable",
            "--input",
            str(input_path),
            "--output",
            str(output_path),
        ]
    )

    assert code == 0
    assert json.loads(output_path.read_text(encoding="utf-8")) == [{"asset_code": "B", "reading": {"v": 2}}]


def test_main_without_config_or_code_fails(tmp_path):
    input_path = _write_json(tmp_path / "in.json", [])

    assert run.main(["--config", str(tmp_path / "missing.yaml"), "--input", str(input_path)]) == 2


def test_main_rejects_invalid_input(tmp_path):
    input_path = tmp_path / "in.json"
    input_path.write_text("\"texto\"", encoding="utf-8")

    code = run.main(
        ["--config", str(tmp_path / "missing.yaml"), "--code", "pass", "--input", str(input_path)]
    )

    assert code == 1


def test_main_reports_setup_failure(tmp_path):
    config_path = tmp_path / "filter.yaml"
    config_path.write_text("enable: true\ncode: pass\npreload: [no_such_module_for_tests]\n", encoding="utf-8")
    input_path = _write_json(tmp_path / "in.json", [])

    assert run.main(["--config", str(config_path), "--input", str(input_path)]) == 1
