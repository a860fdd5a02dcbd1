from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Protocol

from influxdb_client import InfluxDBClient
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from brewski.core.errors import ConfigurationError
from brewski.db.influx import DEFAULT_INFLUX_TIMEOUT_MS, bucket_for
from brewski.devices.base import DeviceReader
from brewski.devices.ds18b20 import DEFAULT_ONEWIRE_SYSFS_DIR, DS18B20
from brewski.devices.dummy import DummyDevice
from brewski.devices.tilt import AdvertisementFeed, TiltHydrometer
from brewski.outputs.base import OutputSink
from brewski.outputs.console import ConsoleSink
from brewski.outputs.influx import InfluxSink
from brewski.outputs.log import LogSink

DEFAULT_POLLING_INTERVAL_SECONDS = 5.0

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a Go style duration such as ``5s``, ``1m30s`` or ``250ms`` into seconds."""
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


@dataclass(frozen=True)
class BuildContext:
    onewire_sysfs_dir: str
    advertisement_inbox: Callable[[], AdvertisementFeed]
    influx_client_factory: Callable[..., InfluxDBClient]


class DeviceSpec(Protocol):
    def generate_device(self, name: str, context: BuildContext) -> DeviceReader: ...

    def output_names(self) -> list[str]: ...


class OutputSpec(Protocol):
    def generate_output(self, name: str, context: BuildContext) -> OutputSink: ...


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _DeviceModel(_ConfigModel):
    outputs: list[str] = Field(default_factory=list)

    def output_names(self) -> list[str]:
        return list(self.outputs)


class DS18B20Config(_DeviceModel):
    id: str = ""

    def generate_device(self, name: str, context: BuildContext) -> DS18B20:
        if not self.id:
            raise ConfigurationError(f"ds18b20 id cannot be empty for device '{name}'")
        return DS18B20(name, self.id, sysfs_dir=context.onewire_sysfs_dir)


class TiltConfig(_DeviceModel):
    temperature_calibration: float = 0.0
    gravity_calibration: float = 0.0

    def generate_device(self, name: str, context: BuildContext) -> TiltHydrometer:
        return TiltHydrometer(
            name,
            context.advertisement_inbox(),
            temperature_calibration=self.temperature_calibration,
            gravity_calibration=self.gravity_calibration,
        )


class DummyDeviceConfig(_DeviceModel):
    possible_values: list[float] = Field(default_factory=list, alias="possible-values")

    def generate_device(self, name: str, context: BuildContext) -> DummyDevice:
        return DummyDevice(name, self.possible_values)


class LogConfig(_ConfigModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level

    def generate_output(self, name: str, context: BuildContext) -> LogSink:
        return LogSink(
            logger=logging.getLogger(f"brewski.outputs.{name}"),
            level=logging.getLevelName(self.level),
        )


class ConsoleConfig(_ConfigModel):
    def generate_output(self, name: str, context: BuildContext) -> ConsoleSink:
        return ConsoleSink()


class InfluxdbConfig(_ConfigModel):
    address: str = ""
    database: str = ""
    token: str = ""
    org: str = "-"
    retention_policy: str = Field(default="", alias="retention-policy")
    timeout_ms: int = Field(
        default=DEFAULT_INFLUX_TIMEOUT_MS, alias="timeout-ms", ge=1000, le=120_000
    )

    def generate_output(self, name: str, context: BuildContext) -> InfluxSink:
        if not self.address:
            raise ConfigurationError(f"address must be provided for influxdb output '{name}'")
        if not self.database:
            raise ConfigurationError(f"database must be provided for influxdb output '{name}'")
        client = context.influx_client_factory(
            url=self.address,
            token=self.token,
            org=self.org,
            timeout_ms=self.timeout_ms,
        )
        return InfluxSink(
            client=client,
            bucket=bucket_for(self.database, self.retention_policy),
            org=self.org,
        )


class DevicesConfig(_ConfigModel):
    ds18b20: dict[str, DS18B20Config] = Field(default_factory=dict)
    tilt: dict[str, TiltConfig] = Field(default_factory=dict)
    dummy_device: dict[str, DummyDeviceConfig] = Field(
        default_factory=dict, alias="dummy-device"
    )

    def families(self) -> list[tuple[str, Iterable[tuple[str, DeviceSpec]]]]:
        return [
            ("ds18b20", self.ds18b20.items()),
            ("tilt", self.tilt.items()),
            ("dummy-device", self.dummy_device.items()),
        ]


class OutputsConfig(_ConfigModel):
    log: dict[str, LogConfig] = Field(default_factory=dict)
    influxdb: dict[str, InfluxdbConfig] = Field(default_factory=dict)
    console: dict[str, ConsoleConfig] = Field(default_factory=dict)

    def families(self) -> list[tuple[str, Iterable[tuple[str, OutputSpec]]]]:
        return [
            ("log", self.log.items()),
            ("influxdb", self.influxdb.items()),
            ("console", self.console.items()),
        ]


class GlobalConfig(_ConfigModel):
    polling_interval: float = Field(
        default=DEFAULT_POLLING_INTERVAL_SECONDS, alias="polling-interval", gt=0
    )
    onewire_sysfs_dir: str = Field(
        default=DEFAULT_ONEWIRE_SYSFS_DIR, alias="onewire-sysfs-dir", min_length=1
    )

    @field_validator("polling_interval", mode="before")
    @classmethod
    def _parse_interval(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_duration(v)
        return v


class AgentConfig(_ConfigModel):
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    devices: DevicesConfig = Field(default_factory=DevicesConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


def parse_agent_config(data: Mapping[str, Any]) -> AgentConfig:
    try:
        return AgentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


def load_agent_config(path: str | Path) -> AgentConfig:
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"could not read config file {path}: {e}") from e
    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"could not parse config file {path}: {e}") from e
    return parse_agent_config(data)
