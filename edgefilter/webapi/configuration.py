"""Configuration endpoints for the simple-python filter."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping

import anyio
from fastapi import APIRouter, Body, Depends, HTTPException, status

from edgefilter.config import FilterConfig, load_filter_config, save_filter_config

from .auth import require_token
from .pipeline import pipeline_manager

router = APIRouter(prefix="/config", tags=["config"])

_filter_lock = asyncio.Lock()

_ALLOWED_FILTER_FIELDS = {"enable", "code", "name", "preload"}


async def _load_filter() -> FilterConfig:
    return await anyio.to_thread.run_sync(load_filter_config)


@router.get("/filter")
async def get_filter_config(_: None = Depends(require_token)) -> Dict[str, Any]:
    config = await _load_filter()
    return config.to_dict()


@router.put("/filter")
async def update_filter_config(
    payload: Mapping[str, Any] = Body(..., description="Campos de filter.yaml a actualizar"),
    _: None = Depends(require_token),
) -> Dict[str, Any]:
    """Validate, persist and apply a (partial) filter configuration."""

    unknown = set(payload.keys()) - _ALLOWED_FILTER_FIELDS
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Campos no soportados: {', '.join(sorted(unknown))}",
        )

    async with _filter_lock:
        current = await _load_filter()
        base = current.to_dict()
        base.update(payload)
        try:
            candidate = FilterConfig.from_mapping(base)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        await anyio.to_thread.run_sync(save_filter_config, candidate)
        await pipeline_manager.apply_config(candidate)
    return candidate.to_dict()
