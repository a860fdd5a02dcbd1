from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from brewski.devices.bluetooth import Advertisement, AdvertisementCallback
from brewski.devices.tilt import IBEACON_PREAMBLE, TILT_COLORS
from brewski.models.measurement import Sample, SampleBuilder

COLOR_UUIDS = {color: uuid for uuid, color in TILT_COLORS.items()}


def make_sample(device_name: str = "device-1", **readings: float) -> Sample:
    now = datetime.now(tz=timezone.utc)
    builder = SampleBuilder(device_name)
    for name, value in readings.items():
        builder.add_datapoint(name, value, now)
    return builder.build()


def tilt_payload(
    color: str = "red",
    *,
    temperature: int = 68,
    gravity: int = 1050,
    preamble: bytes = IBEACON_PREAMBLE,
    uuid_hex: str | None = None,
) -> bytes:
    uuid = bytes.fromhex(uuid_hex or COLOR_UUIDS[color])
    return (
        preamble
        + uuid
        + temperature.to_bytes(2, "big")
        + gravity.to_bytes(2, "big")
        + b"\xc5"
    )


def tilt_advertisement(
    color: str = "red",
    *,
    temperature: int = 68,
    gravity: int = 1050,
    address: str = "AA:BB:CC:DD:EE:FF",
) -> Advertisement:
    return Advertisement(
        address=address,
        manufacturer_data=tilt_payload(color, temperature=temperature, gravity=gravity),
        rssi=-60,
    )


class RecordingSink:
    def __init__(self) -> None:
        self.samples: list[Sample] = []

    def handle(self, sample: Sample) -> None:
        self.samples.append(sample)


class FailingSink:
    def __init__(self, message: str = "sink unavailable") -> None:
        self.error = RuntimeError(message)
        self.calls = 0

    def handle(self, sample: Sample) -> None:
        self.calls += 1
        raise self.error


class ScriptedReader:
    """Returns (or raises) the scripted results in order, then repeats the last one."""

    def __init__(self, name: str, results: list[list[Sample] | Exception]) -> None:
        self._name = name
        self._results = list(results)
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def read(self) -> list[Sample]:
        index = min(self.calls, len(self._results) - 1)
        self.calls += 1
        result = self._results[index]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeInbox:
    def __init__(self, advertisements: list[Advertisement] | None = None) -> None:
        self.pending: list[Advertisement] = list(advertisements or [])

    def drain(self) -> list[Advertisement]:
        drained, self.pending = self.pending, []
        return drained


class FakeScanSession:
    """Delivers one scripted batch per session, then idles briefly or until stopped."""

    def __init__(self, batches: list[list[Advertisement]] | None = None) -> None:
        self._batches = list(batches or [])
        self.sessions = 0
        self.durations: list[float] = []

    def __call__(
        self,
        duration_seconds: float,
        on_advertisement: AdvertisementCallback,
        stop_event: threading.Event,
    ) -> None:
        self.durations.append(duration_seconds)
        index = self.sessions
        self.sessions += 1
        if index < len(self._batches):
            for advertisement in self._batches[index]:
                on_advertisement(advertisement)
        stop_event.wait(0.01)


@dataclass
class FakeWriteApi:
    writes: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False

    def write(self, *, bucket: str, org: str, record: Any) -> None:
        if self.fail:
            raise ConnectionError("influxdb unreachable")
        self.writes.append({"bucket": bucket, "org": org, "record": record})


class FakeInfluxClient:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.write_api_instance = FakeWriteApi()
        self.closed = False

    def write_api(self, write_options: Any = None) -> FakeWriteApi:
        return self.write_api_instance

    def close(self) -> None:
        self.closed = True


class FakeInfluxClientFactory:
    def __init__(self) -> None:
        self.clients: list[FakeInfluxClient] = []

    def __call__(self, **kwargs: Any) -> FakeInfluxClient:
        client = FakeInfluxClient(**kwargs)
        self.clients.append(client)
        return client


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()
