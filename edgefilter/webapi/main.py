"""Start the filter web API with uvicorn.

Bind settings come from ``webapi.yaml`` plus the ``EDGEFILTER_WEBAPI_*``
variables; command line flags override both.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from edgefilter.config import WebAPISettings, load_webapi_settings

logger = logging.getLogger(__name__)

APP_IMPORT_PATH = "edgefilter.webapi:app"


def build_settings(argv: list[str] | None = None) -> WebAPISettings:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--settings", type=Path, default=None, help="Ruta a webapi.yaml")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--reload", action="store_true", help="Recargar al cambiar el código")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args(argv)

    payload = load_webapi_settings(args.settings).to_dict()
    if args.host is not None:
        payload["host"] = args.host
    if args.port is not None:
        payload["port"] = args.port
    if args.reload:
        payload["reload"] = True
    if args.log_level is not None:
        payload["log_level"] = args.log_level
    return WebAPISettings.from_mapping(payload)


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        settings = build_settings(argv)
    except (OSError, ValueError) as exc:
        logger.error("Configuración de la Web API inválida: %s", exc)
        return 2
    if not settings.auth_enabled:
        logger.warning("Web API sin token: los endpoints no exigen autenticación")

    # uvicorn sólo recarga si recibe la aplicación como ruta de importación.
    uvicorn.run(
        APP_IMPORT_PATH,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
