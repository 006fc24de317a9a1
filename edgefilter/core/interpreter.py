"""Ciclo de vida del intérprete compartido por todas las instancias del filtro.

There is a single :class:`EmbeddedEngine` per process: one global scope that
user programs see as their module globals and one lock that serialises every
entry into it. Each filter instance talks to it through an
:class:`InterpreterLifecycle`, which remembers whether that instance started
the engine and is therefore the one allowed to finalise it.
"""

from __future__ import annotations

import builtins
import importlib
import logging
import threading
import types
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from edgefilter.config.schema import PLUGIN_NAME

from .errors import SetupError

logger = logging.getLogger(__name__)


class EmbeddedEngine:
    """Process-wide interpreter state: a global scope guarded by one mutex."""

    def __init__(self, module_name: str = "__main__") -> None:
        self.module_name = module_name
        self.lock = threading.Lock()
        self._module: Optional[types.ModuleType] = None
        self.start_count = 0

    def is_running(self) -> bool:
        return self._module is not None

    @property
    def globals(self) -> Dict[str, Any]:
        if self._module is None:
            raise RuntimeError("El intérprete no está inicializado")
        return self._module.__dict__

    def start(self) -> None:
        module = types.ModuleType(self.module_name)
        module.__dict__["__builtins__"] = builtins
        self._module = module
        self.start_count += 1

    def finalize(self) -> None:
        if self._module is None:
            return
        self._module.__dict__.clear()
        self._module = None


_engine = EmbeddedEngine()


def get_engine() -> EmbeddedEngine:
    """Return the process-wide engine."""

    return _engine


class InterpreterLifecycle:
    """Per-filter view on the shared engine with ownership tracking."""

    def __init__(self, engine: Optional[EmbeddedEngine] = None, *, name: str = PLUGIN_NAME) -> None:
        self.engine = engine or get_engine()
        self.name = name
        self._owns_engine = False
        self._preload: List[str] = []

    @property
    def owns_engine(self) -> bool:
        return self._owns_engine

    def initialize(self) -> bool:
        """Start the engine unless already running.

        Returns True when this call started it. The engine lock is only held
        while starting; it is free again when this returns.
        """

        with self.engine.lock:
            return self._start_locked()

    def _start_locked(self) -> bool:
        # Requiere el lock del motor.
        if self.engine.is_running():
            return False
        self.engine.start()
        if self._preload:
            try:
                self._import_modules(self.engine.globals, self._preload)
            except SetupError:
                self.engine.finalize()
                raise
        self._owns_engine = True
        logger.debug(
            "El intérprete Python está siendo inicializado por el filtro %s",
            self.name,
        )
        return True

    @contextmanager
    def acquire_exclusive(self) -> Iterator[EmbeddedEngine]:
        """Hold the engine lock for the duration of the ``with`` block."""

        with self.engine.lock:
            yield self.engine

    @contextmanager
    def acquire_running(self) -> Iterator[EmbeddedEngine]:
        """Like :meth:`acquire_exclusive`, starting the engine first if needed.

        The check and the start happen under the same lock hold as the
        ``with`` block, so a concurrent shutdown cannot slip in between.
        Raises SetupError when re-applying the pre-load fails; the engine is
        left stopped in that case.
        """

        with self.engine.lock:
            self._start_locked()
            yield self.engine

    def preload(self, modules: Sequence[str]) -> None:
        """Import ``modules`` into the shared global scope.

        Raises SetupError when a module cannot be imported.
        """

        if not modules:
            return
        with self.acquire_exclusive() as engine:
            self._import_modules(engine.globals, modules)
        self._preload = list(modules)

    def _import_modules(self, scope: Dict[str, Any], modules: Sequence[str]) -> None:
        for name in modules:
            try:
                importlib.import_module(name)
                top_level = name.split(".", 1)[0]
                scope[top_level] = importlib.import_module(top_level)
            except ImportError as exc:
                raise SetupError(
                    f"Filtro {self.name}: no se pudo pre-cargar el módulo '{name}': {exc}"
                ) from exc
            logger.info("Pre-carga del módulo '%s' en el ámbito compartido", name)

    def shutdown(self) -> None:
        """Finalise the engine if this instance started it; otherwise just unlock."""

        with self.acquire_exclusive() as engine:
            if not self._owns_engine:
                return
            self._owns_engine = False
            engine.finalize()
        logger.debug("Intérprete Python finalizado por el filtro %s", self.name)
