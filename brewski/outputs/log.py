from __future__ import annotations

import logging

from brewski.models.measurement import Sample


class LogSink:
    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._level = level

    def handle(self, sample: Sample) -> None:
        self._logger.log(
            self._level,
            "device successfully read",
            extra={
                "device": sample.device_name,
                "tags": dict(sample.tags),
                "readings": sample.fields(),
            },
        )
