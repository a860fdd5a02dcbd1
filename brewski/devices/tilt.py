from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Protocol

from brewski.devices.bluetooth import Advertisement
from brewski.models.measurement import Sample, SampleBuilder

logger = logging.getLogger(__name__)

IBEACON_PREAMBLE = bytes.fromhex("4C000215")
TILT_PAYLOAD_LENGTH = 25

TILT_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "A495BB10C5B14B44B5121370F02D74DE": "red",
        "A495BB20C5B14B44B5121370F02D74DE": "green",
        "A495BB30C5B14B44B5121370F02D74DE": "black",
        "A495BB40C5B14B44B5121370F02D74DE": "purple",
        "A495BB50C5B14B44B5121370F02D74DE": "orange",
        "A495BB60C5B14B44B5121370F02D74DE": "blue",
        "A495BB70C5B14B44B5121370F02D74DE": "yellow",
        "A495BB80C5B14B44B5121370F02D74DE": "pink",
    }
)


class AdvertisementFeed(Protocol):
    def drain(self) -> list[Advertisement]: ...


def identify_tilt(advertisement: Advertisement) -> str | None:
    """Return the hydrometer color an advertisement belongs to, or None.

    Anything that is not a 25 byte iBeacon payload carrying one of the known
    Tilt identifiers is ordinary radio noise and yields None.
    """
    data = advertisement.manufacturer_data
    if len(data) != TILT_PAYLOAD_LENGTH:
        return None
    if data[0:4] != IBEACON_PREAMBLE:
        return None
    return TILT_COLORS.get(data[4:20].hex().upper())


def parse_tilt_data(manufacturer_data: bytes) -> tuple[float, float]:
    temperature = float(int.from_bytes(manufacturer_data[20:22], "big"))
    gravity = int.from_bytes(manufacturer_data[22:24], "big") / 1000
    return temperature, gravity


@dataclass
class TiltState:
    running_gravity: float = 1.0
    running_temperature: float = 0.0
    count_since_last_read: int = 0
    ever_seen: bool = False

    def add(self, *, temperature: float, gravity: float) -> None:
        count = self.count_since_last_read
        self.running_gravity = (self.running_gravity * count + gravity) / (count + 1)
        self.running_temperature = (self.running_temperature * count + temperature) / (
            count + 1
        )
        self.count_since_last_read = count + 1
        self.ever_seen = True


class TiltHydrometer:
    """Reports every Tilt color heard so far from a shared advertisement inbox.

    Advertisements drained since the previous read are averaged per color. A
    color that has gone quiet keeps reporting its last average. Calibration is
    applied on the way out and never stored.
    """

    def __init__(
        self,
        name: str,
        source: AdvertisementFeed,
        *,
        temperature_calibration: float = 0.0,
        gravity_calibration: float = 0.0,
    ) -> None:
        self._name = name
        self._source = source
        self.temperature_calibration = temperature_calibration
        self.gravity_calibration = gravity_calibration
        self._states: dict[str, TiltState] = {color: TiltState() for color in TILT_COLORS.values()}

    @property
    def name(self) -> str:
        return self._name

    @property
    def states(self) -> Mapping[str, TiltState]:
        return MappingProxyType(self._states)

    def accumulate(self, advertisement: Advertisement) -> bool:
        color = identify_tilt(advertisement)
        if color is None:
            return False
        temperature, gravity = parse_tilt_data(advertisement.manufacturer_data)
        self._states[color].add(temperature=temperature, gravity=gravity)
        return True

    def read(self) -> list[Sample]:
        now = datetime.now(tz=timezone.utc)
        accepted = sum(1 for a in self._source.drain() if self.accumulate(a))
        logger.debug(
            "accumulated %d tilt advertisements", accepted, extra={"device": self._name}
        )

        samples: list[Sample] = []
        for color, state in self._states.items():
            if not state.ever_seen:
                continue
            samples.append(
                SampleBuilder(self._name)
                .add_tag("color", color)
                .add_datapoint(
                    "temperature",
                    state.running_temperature + self.temperature_calibration,
                    now,
                )
                .add_datapoint(
                    "gravity", state.running_gravity + self.gravity_calibration, now
                )
                .build()
            )

        for state in self._states.values():
            state.count_since_last_read = 0
        return samples
