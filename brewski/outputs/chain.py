from __future__ import annotations

import logging
from typing import Iterable

from brewski.core.errors import OutputChainError
from brewski.models.measurement import Sample
from brewski.outputs.base import OutputSink

logger = logging.getLogger(__name__)


class OutputChain:
    """Fans a sample out to every registered sink, in order.

    A failing sink never keeps later sinks from running. Failures are collected
    and raised together as one :class:`OutputChainError` after the last sink.
    """

    def __init__(self, sinks: Iterable[OutputSink] | None = None) -> None:
        self._sinks: list[OutputSink] = list(sinks or [])

    @property
    def sinks(self) -> tuple[OutputSink, ...]:
        return tuple(self._sinks)

    def register_sink(self, sink: OutputSink) -> None:
        self._sinks.append(sink)

    def dispatch(self, sample: Sample) -> None:
        errors: list[Exception] = []
        for sink in self._sinks:
            try:
                sink.handle(sample)
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "output failed to handle sample",
                    extra={
                        "device": sample.device_name,
                        "output": type(sink).__name__,
                        "error": str(e),
                    },
                )
                errors.append(e)
        if errors:
            raise OutputChainError(errors)

    handle = dispatch
