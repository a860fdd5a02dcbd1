from __future__ import annotations

import pytest

from brewski.core import logging as brewski_logging
from brewski.core.config import Settings
from brewski.devices.bluetooth import AdvertisementSource
from brewski.services.wiring import WiringEngine
from tests.fakes import FakeInfluxClientFactory, FakeScanSession


@pytest.fixture(autouse=True)
def _leave_logging_alone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(brewski_logging, "_configured", True)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        config_file=str(tmp_path / "config.toml"),
        log_level="INFO",
    )


@pytest.fixture()
def influx_factory() -> FakeInfluxClientFactory:
    return FakeInfluxClientFactory()


@pytest.fixture()
def scan_session() -> FakeScanSession:
    return FakeScanSession()


@pytest.fixture()
def engine(influx_factory: FakeInfluxClientFactory, scan_session: FakeScanSession) -> WiringEngine:
    return WiringEngine(
        interval_seconds=3600,
        onewire_sysfs_dir="/nonexistent",
        advertisement_source_factory=lambda: AdvertisementSource(scan_session=scan_session),
        influx_client_factory=influx_factory,
    )

