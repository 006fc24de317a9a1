"""Ejecución del código de usuario sobre una única lectura."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from types import CodeType
from typing import List, Union

from .interpreter import EmbeddedEngine
from .marshal import pack, unpack
from .readings import Datapoint

READING_KEY = "reading"
USER_DATA_KEY = "user_data"


@dataclass(frozen=True)
class Replace:
    """The program produced new datapoints for the reading."""

    datapoints: List[Datapoint] = field(default_factory=list)


@dataclass(frozen=True)
class Drop:
    """The program left no data: the reading must be removed."""


@dataclass(frozen=True)
class Failed:
    """The program raised; the reading stays untouched."""

    message: str


Outcome = Union[Replace, Drop, Failed]


@functools.lru_cache(maxsize=32)
def _compile(code: str) -> CodeType:
    return compile(code, "<simple-python>", "exec")


def describe_exception(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc!r}"


class ExecutionSession:
    """Run a program against one reading using the engine's global scope.

    The caller must hold the engine lock (see
    :meth:`InterpreterLifecycle.acquire_exclusive`) for the whole call.
    """

    def __init__(self, engine: EmbeddedEngine) -> None:
        self.engine = engine

    def run(self, code: str, datapoints: List[Datapoint]) -> Outcome:
        local_scope = {READING_KEY: pack(datapoints)}
        try:
            exec(_compile(code), self.engine.globals, local_scope)
        except BaseException as exc:
            return Failed(describe_exception(exc))

        points = unpack(local_scope.get(READING_KEY))
        if not points:
            return Drop()
        return Replace(points)
