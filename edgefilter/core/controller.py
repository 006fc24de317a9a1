"""Filtro que aplica el código de usuario a cada lectura de un lote."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from edgefilter.config.schema import (
    FilterConfig,
    parse_category,
    reconfiguration_updates,
)

from .errors import SetupError
from .interpreter import InterpreterLifecycle
from .metrics import FilterMetrics
from .readings import Reading, ReadingSet
from .session import USER_DATA_KEY, Drop, ExecutionSession, Replace
from .state import FilterState
from .tracking import AssetTracker, get_asset_tracker

logger = logging.getLogger(__name__)

TRACKING_EVENT = "Filter"

OutputCallback = Callable[[Any, ReadingSet], None]


class SimplePythonFilter:
    """Run the configured program on every reading and forward the batch."""

    def __init__(
        self,
        config: FilterConfig,
        output_handle: Any,
        output: OutputCallback,
        *,
        lifecycle: Optional[InterpreterLifecycle] = None,
        tracker: Optional[AssetTracker] = None,
        metrics: Optional[FilterMetrics] = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self.state = FilterState(enabled=config.enable, code=config.code)
        self.output_handle = output_handle
        self._output = output
        self.lifecycle = lifecycle or InterpreterLifecycle(name=self.name)
        self.tracker = tracker or get_asset_tracker()
        self.metrics = metrics or FilterMetrics()

    @classmethod
    def from_category(
        cls,
        category: Mapping[str, Any],
        output_handle: Any,
        output: OutputCallback,
        **kwargs: Any,
    ) -> "SimplePythonFilter":
        """Build and set up a filter from a host configuration category.

        Raises SetupError when the category lacks ``code`` or a pre-load
        module cannot be imported.
        """

        try:
            config = FilterConfig.from_category(category)
        except ValueError as exc:
            raise SetupError(f"Configuración del filtro inválida: {exc}") from exc
        handle = cls(config, output_handle, output, **kwargs)
        try:
            handle.setup()
        except SetupError:
            handle.shutdown()
            raise
        return handle

    def setup(self) -> None:
        self.lifecycle.initialize()
        self.lifecycle.preload(self.config.preload)

    def ingest(self, reading_set: ReadingSet) -> None:
        """Process one batch and hand it to the next stage exactly once."""

        enabled, code = self.state.snapshot()
        if not enabled or not code:
            self.metrics.record_passthrough(len(reading_set))
            self._forward(reading_set)
            return

        readings = reading_set.get_all_readings()
        total = len(readings)
        replaced = dropped = failed = 0

        try:
            with self.lifecycle.acquire_running() as engine:
                scope = engine.globals
                scope[USER_DATA_KEY] = {}
                session = ExecutionSession(engine)
                try:
                    index = 0
                    while index < len(readings):
                        reading = readings[index]
                        outcome = session.run(code, reading.get_reading_data())
                        if isinstance(outcome, Replace):
                            reading.remove_all_datapoints()
                            for datapoint in outcome.datapoints:
                                reading.add_datapoint(datapoint)
                            replaced += 1
                            index += 1
                        elif isinstance(outcome, Drop):
                            logger.debug(
                                "Filtro '%s': lectura del asset %s descartada por el código",
                                self.name,
                                reading.asset_name,
                            )
                            del readings[index]
                            dropped += 1
                        else:
                            logger.error(
                                "Filtro '%s', código Python '%s': error '%s'",
                                self.name,
                                code,
                                outcome.message,
                            )
                            failed += 1
                            index += 1
                finally:
                    scope.pop(USER_DATA_KEY, None)
        except SetupError as exc:
            logger.error(
                "Filtro '%s': no se pudo reiniciar el intérprete (%s); el lote pasa sin cambios",
                self.name,
                exc,
            )
            self.metrics.record_passthrough(total)
            self._forward(reading_set)
            return

        self._track(readings)
        self.metrics.record_batch(total, replaced=replaced, dropped=dropped, failed=failed)
        self._forward(reading_set)

    def reconfigure(self, new_config: Union[str, bytes, Mapping[str, Any]]) -> None:
        """Apply ``enable``/``code`` from a new configuration category."""

        category = parse_category(new_config)
        updates = reconfiguration_updates(category)
        self.state.apply(enabled=updates.get("enable"), code=updates.get("code"))
        logger.info(
            "Filtro '%s' reconfigurado (%s)",
            self.name,
            ", ".join(sorted(updates)) or "sin cambios",
        )

    def shutdown(self) -> None:
        self.lifecycle.shutdown()
        self.metrics.maybe_log(force=True)

    # Internal helpers --------------------------------------------------------
    def _track(self, readings: List[Reading]) -> None:
        for reading in readings:
            self.tracker.add_asset_tracking_tuple(self.name, reading.asset_name, TRACKING_EVENT)

    def _forward(self, reading_set: ReadingSet) -> None:
        self._output(self.output_handle, reading_set)
