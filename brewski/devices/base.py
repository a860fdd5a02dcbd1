from __future__ import annotations

from typing import Protocol

from brewski.models.measurement import Sample


class DeviceReader(Protocol):
    @property
    def name(self) -> str: ...

    def read(self) -> list[Sample]: ...
