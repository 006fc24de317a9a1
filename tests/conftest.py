"""Shared fixtures for the filter tests."""

from __future__ import annotations

from typing import Any, List, Tuple

import pytest

from edgefilter.config.schema import FilterConfig
from edgefilter.core.controller import SimplePythonFilter
from edgefilter.core.interpreter import EmbeddedEngine, InterpreterLifecycle
from edgefilter.core.metrics import FilterMetrics
from edgefilter.core.readings import Datapoint, Reading, ReadingSet


class RecordingTracker:
    def __init__(self) -> None:
        self.tuples: List[Tuple[str, str, str]] = []

    def add_asset_tracking_tuple(self, service: str, asset: str, event: str) -> None:
        self.tuples.append((service, asset, event))


def make_reading(asset: str, **values: Any) -> Reading:
    return Reading(asset_name=asset, datapoints=[Datapoint(name, value) for name, value in values.items()])


def make_batch(*readings: Reading) -> ReadingSet:
    return ReadingSet(readings)


@pytest.fixture()
def engine() -> EmbeddedEngine:
    return EmbeddedEngine()


@pytest.fixture()
def tracker() -> RecordingTracker:
    return RecordingTracker()


@pytest.fixture()
def forwarded() -> List[Tuple[Any, ReadingSet]]:
    return []


@pytest.fixture()
def make_filter(engine, tracker, forwarded):
    created: List[SimplePythonFilter] = []

    def factory(code: str, *, enable: bool = True, name: str = "python-test") -> SimplePythonFilter:
        config = FilterConfig(enable=enable, code=code, name=name)
        handle = SimplePythonFilter(
            config,
            "out-handle",
            lambda out_handle, batch: forwarded.append((out_handle, batch)),
            lifecycle=InterpreterLifecycle(engine, name=name),
            tracker=tracker,
            metrics=FilterMetrics(log_interval_s=3600.0),
        )
        handle.setup()
        created.append(handle)
        return handle

    yield factory

    for handle in created:
        handle.shutdown()
