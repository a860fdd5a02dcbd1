from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from brewski.models.measurement import Sample


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class InfluxSink:
    def __init__(
        self,
        *,
        client: InfluxDBClient,
        bucket: str,
        org: str = "-",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._org = org
        self._clock = clock

    @property
    def bucket(self) -> str:
        return self._bucket

    def to_point(self, sample: Sample) -> Point:
        point = Point(sample.device_name)
        for key, value in sample.tags.items():
            point = point.tag(key, value)
        for name, value in sample.fields().items():
            point = point.field(name, float(value))
        return point.time(self._clock(), WritePrecision.S)

    def handle(self, sample: Sample) -> None:
        write_api = self._client.write_api(write_options=SYNCHRONOUS)
        write_api.write(bucket=self._bucket, org=self._org, record=self.to_point(sample))

    def close(self) -> None:
        self._client.close()
