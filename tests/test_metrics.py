import json
import logging

import pytest

from edgefilter.core.metrics import FilterMetrics


def _metric_payloads(caplog: pytest.LogCaptureFixture):
    return [
        json.loads(rec.message.split(" ", 1)[1])
        for rec in caplog.records
        if rec.message.startswith("filter_metrics ")
    ]


def test_filter_metrics_logs_batch(caplog: pytest.LogCaptureFixture) -> None:
    """Registrar lotes debe generar métricas con los contadores esperados."""

    logger_name = "test.metrics"
    metrics = FilterMetrics(log_interval_s=60.0, logger=logging.getLogger(logger_name))

    with caplog.at_level(logging.INFO, logger=logger_name):
        metrics.record_batch(5, replaced=3, dropped=1, failed=1)
        metrics.record_passthrough(4)
        metrics.maybe_log(force=True)

    payloads = _metric_payloads(caplog)
    assert payloads, "Se esperaba al menos un log de métricas acumuladas"

    payload = payloads[-1]
    counters = payload["counters"]

    assert payload["type"] == "filter_metrics"
    assert counters["batches_processed"] == 1
    assert counters["batches_passthrough"] == 1
    assert counters["readings_in"] == 9
    assert counters["readings_out"] == 8
    assert counters["readings_replaced"] == 3
    assert counters["readings_dropped"] == 1
    assert counters["execution_errors"] == 1

    assert payload["delta"] == counters


def test_filter_metrics_delta_resets_after_log(caplog: pytest.LogCaptureFixture) -> None:
    logger_name = "test.metrics.delta"
    metrics = FilterMetrics(log_interval_s=60.0, logger=logging.getLogger(logger_name))

    with caplog.at_level(logging.INFO, logger=logger_name):
        metrics.record_batch(2, replaced=2, dropped=0, failed=0)
        metrics.maybe_log(force=True)
        metrics.record_batch(3, replaced=1, dropped=2, failed=0)
        metrics.maybe_log(force=True)

    last = _metric_payloads(caplog)[-1]
    assert last["counters"]["readings_in"] == 5
    assert last["delta"]["readings_in"] == 3
    assert last["delta"]["readings_dropped"] == 2
    assert last["delta"]["readings_replaced"] == 1


def test_filter_metrics_respects_interval(caplog: pytest.LogCaptureFixture) -> None:
    logger_name = "test.metrics.interval"
    metrics = FilterMetrics(log_interval_s=3600.0, logger=logging.getLogger(logger_name))

    with caplog.at_level(logging.INFO, logger=logger_name):
        metrics.record_passthrough(1)
        metrics.maybe_log()

    assert _metric_payloads(caplog) == []
    assert metrics.snapshot()["readings_out"] == 1


def test_empty_counters_match_fresh_snapshot() -> None:
    counters = FilterMetrics.empty_counters()

    assert counters == FilterMetrics(log_interval_s=3600.0).snapshot()
    assert set(counters.values()) == {0}
