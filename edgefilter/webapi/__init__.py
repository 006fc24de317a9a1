"""FastAPI application exposing the simple-python filter."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from edgefilter import __version__

from . import pipeline
from .configuration import router as config_router
from .pipeline import router as filter_router


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # El filtro vivo libera el intérprete al detener el servidor.
    await pipeline.pipeline_manager.shutdown()


app = FastAPI(title="Simple Python Filter Web API", version=__version__, lifespan=lifespan)

app.include_router(config_router)
app.include_router(filter_router)


__all__ = ["app"]
