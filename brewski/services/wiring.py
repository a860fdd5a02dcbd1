from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from influxdb_client import InfluxDBClient

from brewski.core.errors import ConfigurationError
from brewski.db.influx import create_influx_client
from brewski.devices.base import DeviceReader
from brewski.devices.bluetooth import AdvertisementInbox, AdvertisementSource
from brewski.devices.ds18b20 import DEFAULT_ONEWIRE_SYSFS_DIR
from brewski.outputs.base import OutputSink
from brewski.outputs.chain import OutputChain
from brewski.schemas.config import (
    AgentConfig,
    BuildContext,
    DevicesConfig,
    DeviceSpec,
    OutputsConfig,
    OutputSpec,
)
from brewski.services.harness import SensorHarness

logger = logging.getLogger(__name__)

SpecT = TypeVar("SpecT")


def merge_named(
    kind: str, families: Iterable[tuple[str, Iterable[tuple[str, SpecT]]]]
) -> dict[str, SpecT]:
    """Flatten per-family declarations into one name -> spec mapping.

    Names must be unique across every family of the same kind.
    """
    merged: dict[str, SpecT] = {}
    for _family, entries in families:
        for name, spec in entries:
            if name in merged:
                raise ConfigurationError(f"duplicate {kind} declared '{name}'")
            merged[name] = spec
    return merged


class WiringEngine:
    """Turns declared devices and outputs into ready-to-start harnesses.

    Outputs are built once per name and shared by every device that lists them.
    Every Tilt device gets its own inbox on one shared advertisement scan. Nothing is
    started by :meth:`build`; a configuration error therefore never leaves a
    partially running pipeline behind.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        onewire_sysfs_dir: str = DEFAULT_ONEWIRE_SYSFS_DIR,
        advertisement_source_factory: Callable[[], AdvertisementSource] = AdvertisementSource,
        influx_client_factory: Callable[..., InfluxDBClient] = create_influx_client,
    ) -> None:
        self._interval_seconds = interval_seconds
        self._onewire_sysfs_dir = onewire_sysfs_dir
        self._advertisement_source_factory = advertisement_source_factory
        self._influx_client_factory = influx_client_factory
        self._advertisement_source: AdvertisementSource | None = None
        self._outputs: dict[str, OutputSink] = {}

    @classmethod
    def from_config(cls, config: AgentConfig, **kwargs) -> WiringEngine:
        return cls(
            interval_seconds=config.global_.polling_interval,
            onewire_sysfs_dir=config.global_.onewire_sysfs_dir,
            **kwargs,
        )

    @property
    def advertisement_source(self) -> AdvertisementSource | None:
        return self._advertisement_source

    @property
    def outputs(self) -> dict[str, OutputSink]:
        return dict(self._outputs)

    def _subscribe_advertisements(self) -> AdvertisementInbox:
        if self._advertisement_source is None:
            self._advertisement_source = self._advertisement_source_factory()
        return self._advertisement_source.subscribe()

    def build(self, devices: DevicesConfig, outputs: OutputsConfig) -> list[SensorHarness]:
        device_specs: dict[str, DeviceSpec] = merge_named("device", devices.families())
        output_specs: dict[str, OutputSpec] = merge_named("output", outputs.families())
        for device_name, spec in device_specs.items():
            for output_name in spec.output_names():
                if output_name not in output_specs:
                    raise ConfigurationError(
                        f"output '{output_name}' does not exist for device '{device_name}'"
                    )

        context = BuildContext(
            onewire_sysfs_dir=self._onewire_sysfs_dir,
            advertisement_inbox=self._subscribe_advertisements,
            influx_client_factory=self._influx_client_factory,
        )
        built: dict[str, OutputSink] = {}
        harnesses: list[SensorHarness] = []
        try:
            for device_name, spec in device_specs.items():
                reader = self._generate_device(device_name, spec, context)
                harness = SensorHarness(reader, interval_seconds=self._interval_seconds)

                chain = OutputChain()
                for output_name in spec.output_names():
                    output = built.get(output_name)
                    if output is None:
                        output = self._generate_output(
                            output_name, output_specs[output_name], context
                        )
                        built[output_name] = output
                    chain.register_sink(output)
                harness.set_output_chain(chain)
                harnesses.append(harness)
        except ConfigurationError:
            _close_outputs(built.values())
            raise

        self._outputs = built
        logger.info(
            "built %d device harness(es) sharing %d output(s)",
            len(harnesses),
            len(built),
            extra={"component": "wiring"},
        )
        return harnesses

    def start_all(self, harnesses: Iterable[SensorHarness]) -> None:
        if self._advertisement_source is not None:
            self._advertisement_source.start()
        for harness in harnesses:
            harness.start()
            logger.info("started device harness", extra={"device": harness.name})

    def stop_all(self, harnesses: Iterable[SensorHarness], *, timeout: float = 2.0) -> None:
        harnesses = list(harnesses)
        for harness in harnesses:
            harness.stop()
        if self._advertisement_source is not None:
            self._advertisement_source.stop()
        for harness in harnesses:
            harness.join(timeout=timeout)
        if self._advertisement_source is not None:
            self._advertisement_source.join(timeout=timeout)
        _close_outputs(self._outputs.values())

    @staticmethod
    def _generate_device(name: str, spec: DeviceSpec, context: BuildContext) -> DeviceReader:
        try:
            return spec.generate_device(name, context)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"could not create device '{name}': {e}") from e

    @staticmethod
    def _generate_output(name: str, spec: OutputSpec, context: BuildContext) -> OutputSink:
        try:
            return spec.generate_output(name, context)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"could not create output '{name}': {e}") from e


def _close_outputs(outputs: Iterable[OutputSink]) -> None:
    for output in outputs:
        close = getattr(output, "close", None)
        if close is None:
            continue
        try:
            close()
        except Exception as e:  # noqa: BLE001
            logger.warning("error closing output", extra={"error": str(e)})
