from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECONDS = 60.0
DEFAULT_RETRY_SECONDS = 5.0


@dataclass(frozen=True)
class Advertisement:
    address: str
    manufacturer_data: bytes
    rssi: int | None = None


AdvertisementCallback = Callable[[Advertisement], None]
ScanSession = Callable[[float, AdvertisementCallback, threading.Event], None]


def advertisements_from(device: BLEDevice, data: AdvertisementData) -> list[Advertisement]:
    # bleak strips the little-endian company id from the payload; put it back so
    # the bytes match the raw manufacturer-specific data on the air.
    return [
        Advertisement(
            address=device.address,
            manufacturer_data=company_id.to_bytes(2, "little") + bytes(payload),
            rssi=data.rssi,
        )
        for company_id, payload in data.manufacturer_data.items()
    ]


async def _scan(
    duration_seconds: float,
    on_advertisement: AdvertisementCallback,
    stop_event: threading.Event | None = None,
) -> None:
    def detection_callback(device: BLEDevice, data: AdvertisementData) -> None:
        for advertisement in advertisements_from(device, data):
            on_advertisement(advertisement)

    async with BleakScanner(detection_callback=detection_callback):
        if stop_event is None:
            await asyncio.sleep(duration_seconds)
        else:
            await asyncio.to_thread(stop_event.wait, duration_seconds)


def bleak_scan_session(
    duration_seconds: float,
    on_advertisement: AdvertisementCallback,
    stop_event: threading.Event | None = None,
) -> None:
    """Scan for ``duration_seconds``, or until ``stop_event`` is set."""
    asyncio.run(_scan(duration_seconds, on_advertisement, stop_event))


class AdvertisementInbox:
    """Advertisements received since the last drain, for one consumer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: list[Advertisement] = []

    def append(self, advertisement: Advertisement) -> None:
        with self._lock:
            self._pending.append(advertisement)

    def drain(self) -> list[Advertisement]:
        with self._lock:
            drained, self._pending = self._pending, []
        return drained


class AdvertisementSource:
    """Runs one background scan and copies every advertisement to each subscriber.

    Scanning runs as back-to-back bounded sessions of ``session_seconds``.
    Each :meth:`subscribe` call returns a separate inbox, so consumers never
    drain each other's advertisements.
    """

    def __init__(
        self,
        *,
        scan_session: ScanSession = bleak_scan_session,
        session_seconds: float = DEFAULT_SESSION_SECONDS,
        retry_seconds: float = DEFAULT_RETRY_SECONDS,
    ) -> None:
        self._scan_session = scan_session
        self._session_seconds = session_seconds
        self._retry_seconds = retry_seconds
        self._lock = threading.Lock()
        self._inboxes: list[AdvertisementInbox] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def subscribers(self) -> int:
        with self._lock:
            return len(self._inboxes)

    def subscribe(self) -> AdvertisementInbox:
        inbox = AdvertisementInbox()
        with self._lock:
            self._inboxes.append(inbox)
        return inbox

    def append(self, advertisement: Advertisement) -> None:
        with self._lock:
            inboxes = list(self._inboxes)
        for inbox in inboxes:
            inbox.append(advertisement)

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="bluetooth-advertisement-scan", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._scan_session(self._session_seconds, self.append, self._stop_event)
            except Exception as e:  # noqa: BLE001
                logger.error(
                    "bluetooth scan session failed",
                    extra={"component": "bluetooth", "error": str(e)},
                )
                self._stop_event.wait(self._retry_seconds)
