from __future__ import annotations

from typing import Protocol

from brewski.models.measurement import Sample


class OutputSink(Protocol):
    def handle(self, sample: Sample) -> None: ...
