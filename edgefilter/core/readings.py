"""Modelo de lecturas y datapoints que recorren el pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

DatapointValue = Union[int, float, str]


@dataclass(frozen=True)
class Datapoint:
    """Named scalar value inside a reading."""

    name: str
    value: DatapointValue

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("el nombre del datapoint no puede estar vacío")
        if isinstance(self.value, bool):
            object.__setattr__(self, "value", int(self.value))
        elif not isinstance(self.value, (int, float, str)):
            raise TypeError(
                f"Datapoint '{self.name}': tipo no soportado {type(self.value).__name__}"
            )

    @property
    def kind(self) -> str:
        if isinstance(self.value, int):
            return "integer"
        if isinstance(self.value, float):
            return "float"
        return "string"


@dataclass
class Reading:
    """Registro de un asset con su conjunto de datapoints."""

    asset_name: str
    datapoints: List[Datapoint] = field(default_factory=list)
    user_ts: Optional[str] = None

    def __post_init__(self) -> None:
        seen = set()
        for datapoint in self.datapoints:
            if datapoint.name in seen:
                raise ValueError(f"datapoint duplicado: {datapoint.name}")
            seen.add(datapoint.name)

    def get_reading_data(self) -> List[Datapoint]:
        return self.datapoints

    def get_datapoint(self, name: str) -> Optional[Datapoint]:
        for datapoint in self.datapoints:
            if datapoint.name == name:
                return datapoint
        return None

    def add_datapoint(self, datapoint: Datapoint) -> None:
        # Un nombre repetido reemplaza el valor previo.
        for position, current in enumerate(self.datapoints):
            if current.name == datapoint.name:
                self.datapoints[position] = datapoint
                return
        self.datapoints.append(datapoint)

    def remove_all_datapoints(self) -> None:
        self.datapoints.clear()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Reading":
        asset = data.get("asset_code", data.get("asset"))
        if not asset:
            raise ValueError("'asset_code' es obligatorio")
        values = data.get("reading", data.get("readings")) or {}
        if not isinstance(values, Mapping):
            raise ValueError("'reading' debe ser un objeto")
        datapoints = [Datapoint(str(name), value) for name, value in values.items()]
        user_ts = data.get("user_ts")
        return cls(
            asset_name=str(asset),
            datapoints=datapoints,
            user_ts=str(user_ts) if user_ts is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "asset_code": self.asset_name,
            "reading": {dp.name: dp.value for dp in self.datapoints},
        }
        if self.user_ts is not None:
            payload["user_ts"] = self.user_ts
        return payload


class ReadingSet:
    """Lote de lecturas entregado en una llamada de ingesta."""

    def __init__(self, readings: Optional[Iterable[Reading]] = None) -> None:
        self._readings: List[Reading] = list(readings or [])

    def get_all_readings(self) -> List[Reading]:
        """Return the live list; callers may erase entries in place."""

        return self._readings

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(self._readings)

    def __repr__(self) -> str:
        return f"ReadingSet({len(self._readings)} readings)"

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ReadingSet":
        return cls(Reading.from_mapping(record) for record in records)

    def to_records(self) -> List[Dict[str, Any]]:
        return [reading.to_dict() for reading in self._readings]
