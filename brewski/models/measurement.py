from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class Datapoint:
    name: str
    value: float
    time: datetime


@dataclass(frozen=True)
class Sample:
    device_name: str
    tags: Mapping[str, str] = field(default_factory=dict)
    datapoints: tuple[Datapoint, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        object.__setattr__(self, "datapoints", tuple(self.datapoints))

    def fields(self) -> dict[str, float]:
        return {d.name: d.value for d in self.datapoints}


class SampleBuilder:
    def __init__(self, device_name: str) -> None:
        self._device_name = device_name
        self._tags: dict[str, str] = {}
        self._datapoints: list[Datapoint] = []

    def add_tag(self, key: str, value: str) -> SampleBuilder:
        self._tags[key] = value
        return self

    def add_datapoint(
        self, name: str, value: float, time: datetime | None = None
    ) -> SampleBuilder:
        if time is None:
            time = datetime.now(tz=timezone.utc)
        self._datapoints.append(Datapoint(name=name, value=float(value), time=time))
        return self

    def build(self) -> Sample:
        return Sample(
            device_name=self._device_name,
            tags=self._tags,
            datapoints=tuple(self._datapoints),
        )
