from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from brewski.core.errors import OutputChainError
from brewski.devices.base import DeviceReader
from brewski.models.measurement import Sample
from brewski.outputs.chain import OutputChain
from brewski.outputs.console import ConsoleSink

logger = logging.getLogger(__name__)


class SensorHarness:
    """Polls one device on a fixed interval and feeds its output chain.

    Each harness owns a daemon thread and a stop event. A failed read skips the
    tick; only :meth:`stop` ends the loop.
    """

    def __init__(
        self,
        reader: DeviceReader,
        *,
        interval_seconds: float,
        chain: OutputChain | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._reader = reader
        self._interval_seconds = float(interval_seconds)
        self._chain = chain if chain is not None else OutputChain([ConsoleSink()])
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self.last_samples: list[Sample] = []
        self.last_read_at: datetime | None = None
        self.read_failures = 0
        self.dispatch_failures = 0

    @property
    def name(self) -> str:
        return self._reader.name

    @property
    def reader(self) -> DeviceReader:
        return self._reader

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def chain(self) -> OutputChain:
        return self._chain

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_output_chain(self, chain: OutputChain) -> None:
        self._chain = chain

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name=f"harness-{self.name}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval_seconds):
            self.tick()

    def tick(self) -> None:
        try:
            samples = self._reader.read()
        except Exception as e:  # noqa: BLE001
            self.read_failures += 1
            logger.error(
                "error reading data from device",
                extra={"device": self.name, "error": str(e)},
            )
            return

        self.last_samples = list(samples)
        self.last_read_at = datetime.now(tz=timezone.utc)

        chain = self._chain
        for sample in self.last_samples:
            try:
                chain.dispatch(sample)
            except OutputChainError as e:
                self.dispatch_failures += 1
                logger.error(
                    "error recording device reading",
                    extra={"device": self.name, "errors": len(e.errors), "error": str(e)},
                )
