"""Puntos de entrada del plugin de filtro "simple-python".

The host pipeline drives the filter exclusively through these functions:
``plugin_info`` to describe it, ``plugin_init`` to obtain a handle,
``plugin_ingest`` for each batch, ``plugin_reconfigure`` when the category
changes and ``plugin_shutdown`` at the end.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from edgefilter import __version__
from edgefilter.config.schema import PLUGIN_NAME, default_category

from .controller import OutputCallback, SimplePythonFilter
from .errors import SetupError
from .readings import ReadingSet

logger = logging.getLogger(__name__)

INTERFACE_VERSION = "1.0.0"


def plugin_info() -> Dict[str, Any]:
    """Return the information about this plugin."""

    return {
        "name": PLUGIN_NAME,
        "version": __version__,
        "mode": "none",
        "type": "filter",
        "interface": INTERFACE_VERSION,
        "config": default_category(),
    }


def plugin_init(
    config: Mapping[str, Any],
    output_handle: Any,
    output: OutputCallback,
    **kwargs: Any,
) -> Optional[SimplePythonFilter]:
    """Create the filter handle, or return None when setup fails."""

    try:
        handle = SimplePythonFilter.from_category(config, output_handle, output, **kwargs)
    except SetupError as exc:
        logger.critical(
            "Filtro %s: %s; se aborta la configuración del filtro",
            PLUGIN_NAME,
            exc,
        )
        return None
    return handle


def plugin_ingest(handle: SimplePythonFilter, reading_set: ReadingSet) -> None:
    handle.ingest(reading_set)


def plugin_reconfigure(
    handle: SimplePythonFilter,
    new_config: Union[str, bytes, Mapping[str, Any]],
) -> None:
    handle.reconfigure(new_config)


def plugin_shutdown(handle: SimplePythonFilter) -> None:
    handle.shutdown()
