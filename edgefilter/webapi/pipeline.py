"""Endpoints to run batches through the live filter instance."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import anyio
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr

from edgefilter.config import FilterConfig, load_filter_config
from edgefilter.core.controller import SimplePythonFilter
from edgefilter.core.metrics import FilterMetrics
from edgefilter.core.plugin import (
    plugin_info,
    plugin_ingest,
    plugin_init,
    plugin_reconfigure,
    plugin_shutdown,
)
from edgefilter.core.readings import ReadingSet

from .auth import require_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/filter", tags=["filter"])

ScalarValue = Union[StrictInt, StrictFloat, StrictStr]


class ReadingModel(BaseModel):
    """Lectura en el formato JSON del pipeline."""

    asset_code: str = Field(..., min_length=1, description="Nombre del asset")
    reading: Dict[str, ScalarValue] = Field(
        default_factory=dict, description="Datapoints: nombre -> valor escalar"
    )
    user_ts: Optional[str] = Field(None, description="Marca temporal de la lectura")


class IngestRequest(BaseModel):
    readings: List[ReadingModel] = Field(default_factory=list)


class IngestResponse(BaseModel):
    readings: List[ReadingModel]
    count: int


ConfigLoader = Callable[[], FilterConfig]


def _category_from_config(config: FilterConfig) -> Dict[str, Dict[str, Any]]:
    return {name: {"value": value} for name, value in config.to_dict().items()}


class FilterPipelineManager:
    """Own the live filter handle used by the web API."""

    def __init__(self, *, config_loader: ConfigLoader | None = None) -> None:
        self._config_loader = config_loader or load_filter_config
        self._lock = asyncio.Lock()
        self._handle: SimplePythonFilter | None = None
        self._config: FilterConfig | None = None
        self.batches_forwarded = 0

    def _on_output(self, _out_handle: Any, reading_set: ReadingSet) -> None:
        self.batches_forwarded += 1
        logger.debug("Lote reenviado con %d lecturas", len(reading_set))

    def _start(self, config: FilterConfig) -> SimplePythonFilter:
        handle = plugin_init(_category_from_config(config), self, self._on_output)
        if handle is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"No se pudo inicializar el filtro {config.name}",
            )
        self._config = config
        return handle

    async def _ensure_handle_locked(self) -> SimplePythonFilter:
        if self._handle is None:
            config = await anyio.to_thread.run_sync(self._config_loader)
            self._handle = await anyio.to_thread.run_sync(self._start, config)
        return self._handle

    async def ingest(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            reading_set = ReadingSet.from_records(records)
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        # El lote corre con el lock tomado: apply_config/shutdown esperan a que
        # termine antes de cerrar el filtro que lo procesa.
        async with self._lock:
            handle = await self._ensure_handle_locked()
            await anyio.to_thread.run_sync(plugin_ingest, handle, reading_set)
        return reading_set.to_records()

    async def apply_config(self, config: FilterConfig) -> None:
        """Push a new configuration into the live handle, if any."""

        async with self._lock:
            handle = self._handle
            if handle is None:
                return
            previous = self._config
            if previous is not None and (previous.name, previous.preload) == (config.name, config.preload):
                plugin_reconfigure(handle, {"enable": config.enable, "code": config.code})
                self._config = config
                return
            # Nombre o módulos pre-cargados distintos: se recrea el filtro.
            await anyio.to_thread.run_sync(plugin_shutdown, handle)
            self._handle = None
            self._handle = await anyio.to_thread.run_sync(self._start, config)

    async def metrics(self) -> Dict[str, Any]:
        async with self._lock:
            handle = self._handle
        if handle is None:
            return {"active": False, "counters": FilterMetrics.empty_counters()}
        return {
            "active": True,
            "name": handle.name,
            "enabled": handle.state.is_enabled(),
            "counters": handle.metrics.snapshot(),
            "batches_forwarded": self.batches_forwarded,
        }

    async def shutdown(self) -> None:
        async with self._lock:
            handle, self._handle = self._handle, None
            self._config = None
        if handle is None:
            return
        try:
            await anyio.to_thread.run_sync(plugin_shutdown, handle)
        except Exception:  # pragma: no cover - best effort
            logger.exception("Error al detener el filtro %s", handle.name)


pipeline_manager = FilterPipelineManager()


@router.get("/info")
async def get_plugin_info(_: None = Depends(require_token)) -> Dict[str, Any]:
    """Return the plugin descriptor and its default configuration."""

    return plugin_info()


@router.post("/ingest", response_model=IngestResponse, response_model_exclude_none=True)
async def ingest_readings(
    request: IngestRequest,
    _: None = Depends(require_token),
) -> Dict[str, Any]:
    """Run one batch through the live filter and return the forwarded readings."""

    records = [reading.model_dump(exclude_none=True) for reading in request.readings]
    output = await pipeline_manager.ingest(records)
    return {"readings": output, "count": len(output)}


@router.get("/metrics")
async def get_filter_metrics(_: None = Depends(require_token)) -> Dict[str, Any]:
    return await pipeline_manager.metrics()
