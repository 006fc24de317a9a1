"""Estado de configuración del filtro protegido por un lock."""

from __future__ import annotations

import threading
from typing import Tuple


class FilterState:
    """Enable flag and program text shared between ingest and reconfigure.

    The lock is independent from the engine lock: a change becomes visible
    to the next ingest call, never to one already running.
    """

    def __init__(self, enabled: bool = False, code: str = "") -> None:
        self._lock = threading.Lock()
        self._enabled = bool(enabled)
        self._code = code

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._enabled = bool(enabled)

    def set_code(self, code: str) -> None:
        with self._lock:
            self._code = code

    def is_enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def get_code(self) -> str:
        with self._lock:
            return self._code

    def snapshot(self) -> Tuple[bool, str]:
        with self._lock:
            return self._enabled, self._code

    def apply(self, *, enabled: bool | None = None, code: str | None = None) -> None:
        """Update both items atomically; ``None`` leaves an item unchanged."""

        with self._lock:
            if code is not None:
                self._code = code
            if enabled is not None:
                self._enabled = bool(enabled)
