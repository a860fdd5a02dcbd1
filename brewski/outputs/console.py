from __future__ import annotations

from typing import TextIO

from brewski.models.measurement import Sample


def format_sample(sample: Sample) -> str:
    parts = [f"device={sample.device_name}"]
    parts.extend(f"{k}={v}" for k, v in sorted(sample.tags.items()))
    parts.extend(f"{d.name}={d.value:f}" for d in sample.datapoints)
    return ",".join(parts)


class ConsoleSink:
    def __init__(self, *, stream: TextIO | None = None) -> None:
        self._stream = stream

    def handle(self, sample: Sample) -> None:
        print(f"data read! {format_sample(sample)}", file=self._stream, flush=True)
