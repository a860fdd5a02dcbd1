from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from brewski.core.errors import DeviceReadError
from brewski.models.measurement import Sample, SampleBuilder

DEFAULT_ONEWIRE_SYSFS_DIR = "/sys/bus/w1/devices"
READY_TOKEN = "YES"
DATA_FILE = "w1_slave"


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


class DS18B20:
    """1-Wire contact thermometer read through the kernel's sysfs interface.

    The driver exposes a two line file: the first ends in ``YES`` once the CRC
    check passed, the second ends in ``t=<millidegrees celsius>``.
    """

    def __init__(
        self,
        name: str,
        device_id: str,
        *,
        sysfs_dir: str | Path = DEFAULT_ONEWIRE_SYSFS_DIR,
    ) -> None:
        self._name = name
        self.device_id = device_id
        self._sysfs_dir = Path(sysfs_dir)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._sysfs_dir / self.device_id / DATA_FILE

    def read(self) -> list[Sample]:
        try:
            text = self.path.read_text()
        except OSError as e:
            raise DeviceReadError(f"could not read {self.path}: {e}") from e

        lines = text.splitlines()
        if len(lines) != 2:
            raise DeviceReadError(
                f"unexpected number of lines in sensor output: {len(lines)}"
            )
        if not self._is_ready(lines[0]):
            raise DeviceReadError("device not ready")
        return [self._parse_temperature(lines[1])]

    @staticmethod
    def _is_ready(status_line: str) -> bool:
        fields = status_line.split()
        return bool(fields) and fields[-1] == READY_TOKEN

    def _parse_temperature(self, data_line: str) -> Sample:
        fields = data_line.split()
        parts = fields[-1].split("=") if fields else []
        if len(parts) != 2:
            raise DeviceReadError(f"malformed temperature field: {data_line!r}")
        try:
            raw = float(parts[1])
        except ValueError as e:
            raise DeviceReadError(f"error parsing temperature: {e}") from e

        now = datetime.now(tz=timezone.utc)
        celsius = raw / 1000
        return (
            SampleBuilder(self._name)
            .add_tag("id", self.device_id)
            .add_datapoint("celsius", celsius, now)
            .add_datapoint("fahrenheit", celsius_to_fahrenheit(celsius), now)
            .build()
        )
