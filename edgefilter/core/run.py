"""Run a JSON batch of readings through the simple-python filter."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from edgefilter.config.schema import FilterConfig
from edgefilter.config.store import load_filter_config

from .plugin import plugin_ingest, plugin_init, plugin_shutdown
from .readings import ReadingSet

logger = logging.getLogger(__name__)


def _read_records(source: str) -> List[Dict[str, Any]]:
    if source == "-":
        data = json.load(sys.stdin)
    else:
        with Path(source).open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("readings", [data])
    if not isinstance(data, list):
        raise ValueError("La entrada debe ser una lista de lecturas")
    return data


def _write_records(target: Optional[str], records: List[Dict[str, Any]]) -> None:
    text = json.dumps(records, ensure_ascii=False, indent=2)
    if not target or target == "-":
        sys.stdout.write(text + "\n")
        return
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")


def filter_records(config: FilterConfig, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Build a filter from ``config``, ingest ``records`` once and return the output."""

    category = {name: {"value": value} for name, value in config.to_dict().items()}
    forwarded: List[ReadingSet] = []
    handle = plugin_init(category, None, lambda _handle, batch: forwarded.append(batch))
    if handle is None:
        raise RuntimeError(f"No se pudo inicializar el filtro {config.name}")
    try:
        plugin_ingest(handle, ReadingSet.from_records(records))
    finally:
        plugin_shutdown(handle)
    return [record for batch in forwarded for record in batch.to_records()]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Ruta a filter.yaml")
    parser.add_argument("--code", default=None, help="Código Python que reemplaza al configurado")
    parser.add_argument(
        "--enable",
        action="store_true",
        help="Forzar la ejecución aunque la configuración esté deshabilitada",
    )
    parser.add_argument("--input", default="-", help="Archivo JSON con las lecturas ('-' para stdin)")
    parser.add_argument("--output", default="-", help="Archivo JSON de salida ('-' para stdout)")
    args = parser.parse_args(argv)

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = load_filter_config(args.config)
    except FileNotFoundError:
        if args.code is None:
            logger.error("No se encontró %s y no se indicó --code", args.config)
            return 2
        config = FilterConfig()
    if args.code is not None:
        config.code = args.code
    if args.enable:
        config.enable = True

    try:
        records = _read_records(args.input)
        output = filter_records(config, records)
    except (OSError, ValueError, TypeError, RuntimeError) as exc:
        logger.error("No se pudo procesar el lote: %s", exc)
        return 1

    _write_records(args.output, output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
