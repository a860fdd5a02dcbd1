from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from brewski.models.measurement import Sample
from brewski.services.harness import SensorHarness


class DatapointRead(BaseModel):
    name: str
    value: float
    time: datetime


class SampleRead(BaseModel):
    device_name: str
    tags: dict[str, str] = Field(default_factory=dict)
    datapoints: list[DatapointRead] = Field(default_factory=list)

    @classmethod
    def from_sample(cls, sample: Sample) -> SampleRead:
        return cls(
            device_name=sample.device_name,
            tags=dict(sample.tags),
            datapoints=[
                DatapointRead(name=d.name, value=d.value, time=d.time)
                for d in sample.datapoints
            ],
        )


class DeviceStatus(BaseModel):
    name: str
    running: bool
    interval_seconds: float
    last_read_at: datetime | None = None
    read_failures: int = Field(ge=0)
    dispatch_failures: int = Field(ge=0)
    samples: list[SampleRead] = Field(default_factory=list)

    @classmethod
    def from_harness(cls, harness: SensorHarness) -> DeviceStatus:
        return cls(
            name=harness.name,
            running=harness.running,
            interval_seconds=harness.interval_seconds,
            last_read_at=harness.last_read_at,
            read_failures=harness.read_failures,
            dispatch_failures=harness.dispatch_failures,
            samples=[SampleRead.from_sample(s) for s in harness.last_samples],
        )
