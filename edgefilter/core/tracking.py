"""Registro de tuplas de seguimiento de assets."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetTrackingTuple:
    service: str
    asset: str
    event: str


@runtime_checkable
class AssetTracker(Protocol):
    """Contrato mínimo del destino de seguimiento de assets."""

    def add_asset_tracking_tuple(self, service: str, asset: str, event: str) -> None:
        """Registra que ``service`` procesó ``asset`` con el rol ``event``."""


class InMemoryAssetTracker:
    """Keeps the set of tuples seen so far and logs the new ones."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tuples: Set[AssetTrackingTuple] = set()

    def add_asset_tracking_tuple(self, service: str, asset: str, event: str) -> None:
        item = AssetTrackingTuple(service=service, asset=asset, event=event)
        with self._lock:
            if item in self._tuples:
                return
            self._tuples.add(item)
        logger.info("Nuevo asset registrado: servicio=%s asset=%s evento=%s", service, asset, event)

    def tuples(self) -> List[AssetTrackingTuple]:
        with self._lock:
            return sorted(self._tuples, key=lambda t: (t.service, t.asset, t.event))

    def clear(self) -> None:
        with self._lock:
            self._tuples.clear()


_default_tracker: InMemoryAssetTracker | None = None


def get_asset_tracker() -> InMemoryAssetTracker:
    """Return the process-wide default tracker."""

    global _default_tracker
    if _default_tracker is None:
        _default_tracker = InMemoryAssetTracker()
    return _default_tracker
