"""Conversión entre datapoints tipados y valores Python para el código de usuario.

``pack`` produces the mapping bound to ``reading`` in the user program and
``unpack`` turns whatever the program left there back into datapoints. Only
integer, float and string scalars travel across; keys and string values are
handed to the program as UTF-8 byte strings.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from .readings import Datapoint

logger = logging.getLogger(__name__)

_UINT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


def _canonical_key(key: Any) -> Any:
    if isinstance(key, str):
        return key.encode("utf-8")
    return key


class ReadingDict(dict):
    """``dict`` keyed by byte strings that also accepts text keys.

    ``reading['temperature']`` and ``reading[b'temperature']`` address the
    same entry; text keys are stored UTF-8 encoded.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.update(*args, **kwargs)

    def __getitem__(self, key: Any) -> Any:
        return super().__getitem__(_canonical_key(key))

    def __setitem__(self, key: Any, value: Any) -> None:
        super().__setitem__(_canonical_key(key), value)

    def __delitem__(self, key: Any) -> None:
        super().__delitem__(_canonical_key(key))

    def __contains__(self, key: Any) -> bool:
        return super().__contains__(_canonical_key(key))

    def get(self, key: Any, default: Any = None) -> Any:
        return super().get(_canonical_key(key), default)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        return super().setdefault(_canonical_key(key), default)

    def pop(self, key: Any, *args: Any) -> Any:
        return super().pop(_canonical_key(key), *args)

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def __or__(self, other: Any) -> Any:
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = self.copy()
        merged.update(other)
        return merged

    def __ror__(self, other: Any) -> Any:
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = ReadingDict(other)
        merged.update(self)
        return merged

    def __ior__(self, other: Any) -> "ReadingDict":
        self.update(other)
        return self

    @classmethod
    def fromkeys(cls, keys: Iterable[Any], value: Any = None) -> "ReadingDict":
        packed = cls()
        for key in keys:
            packed[key] = value
        return packed

    def copy(self) -> "ReadingDict":
        return ReadingDict(self)


def pack(datapoints: Iterable[Datapoint]) -> ReadingDict:
    """Build a fresh ``ReadingDict`` from a reading's datapoints."""

    packed = ReadingDict()
    for datapoint in datapoints:
        kind = datapoint.kind
        if kind == "integer":
            value: Any = int(datapoint.value)
        elif kind == "float":
            value = float(datapoint.value)
        else:
            value = str(datapoint.value).encode("utf-8")
        packed[datapoint.name.encode("utf-8")] = value
    return packed


def _to_int64(value: int) -> int:
    wrapped = value & _UINT64_MASK
    if wrapped & _INT64_SIGN:
        wrapped -= 1 << 64
    return wrapped


def _decode_key(key: Any) -> Optional[str]:
    if isinstance(key, str):
        return key
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    return None


def unpack(result: Any) -> Optional[List[Datapoint]]:
    """Convert the user's ``reading`` value back into datapoints.

    Returns ``None`` when ``result`` is not a dict or is empty. The first
    entry with an unsupported key or value type ends the conversion and the
    datapoints gathered until then are returned.
    """

    if not isinstance(result, dict) or not result:
        return None

    datapoints: List[Datapoint] = []
    for key, value in result.items():
        name = _decode_key(key)
        if isinstance(value, int):
            converted: Any = _to_int64(int(value))
        elif isinstance(value, float):
            converted = value
        elif isinstance(value, bytes):
            converted = value.decode("utf-8", errors="replace")
        elif isinstance(value, str):
            converted = value
        else:
            converted = None

        if not name or converted is None:
            logger.warning(
                "Datapoint %r con tipo no soportado (%s); se descartan las %d entradas restantes",
                key,
                type(value).__name__,
                len(result) - len(datapoints),
            )
            break
        datapoints.append(Datapoint(name, converted))
    return datapoints
