from __future__ import annotations

import logging
from typing import Optional

import typer
import uvicorn

from brewski.core.config import Settings, load_settings
from brewski.core.errors import ConfigurationError
from brewski.core.logging import configure_logging
from brewski.devices import bluetooth
from brewski.devices.bluetooth import Advertisement
from brewski.devices.tilt import identify_tilt
from brewski.factory import create_app
from brewski.schemas.config import load_agent_config
from brewski.services.wiring import WiringEngine

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Fermentation telemetry agent for DS18B20 thermometers and Tilt hydrometers.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _settings(config: Optional[str], log_level: Optional[str] = None) -> Settings:
    settings = load_settings()
    if config:
        settings.config_file = config
    if log_level:
        settings.log_level = log_level.upper()
    return settings


@app.command("run")
def run_command(
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to the brewski TOML config file."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Status API bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Status API port."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Root log level."),
) -> None:
    """Start polling every configured device and serve the status API."""
    settings = _settings(config, log_level)
    try:
        application = create_app(settings)
    except ConfigurationError as e:
        logger.error("could not generate sensors", extra={"component": "init", "error": str(e)})
        raise typer.Exit(code=1) from e
    uvicorn.run(
        application,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command("check")
def check_command(
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to the brewski TOML config file."
    ),
) -> None:
    """Validate a config file and print how devices are wired to outputs."""
    settings = _settings(config)
    configure_logging(settings.log_level)
    try:
        agent_config = load_agent_config(settings.config_file)
        engine = WiringEngine.from_config(agent_config)
        harnesses = engine.build(agent_config.devices, agent_config.outputs)
    except ConfigurationError as e:
        typer.echo(f"invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"polling interval: {agent_config.global_.polling_interval:g}s")
    outputs = engine.outputs
    for harness in sorted(harnesses, key=lambda h: h.name):
        names = [name for name, sink in outputs.items() if sink in harness.chain.sinks]
        typer.echo(f"{harness.name} -> {', '.join(names) or '(no outputs)'}")
    engine.stop_all(harnesses)


@app.command("tilt-finder")
def tilt_finder_command(
    seconds: float = typer.Option(
        0.0, "--seconds", "-s", min=0.0, help="Stop after this many seconds (0 scans until interrupted)."
    ),
) -> None:
    """Scan for Tilt hydrometers and report each one heard."""
    typer.echo("Scanning for Tilt Hydrometer devices, use ctrl-C to exit...")
    found: set[tuple[str, str]] = set()

    def on_advertisement(advertisement: Advertisement) -> None:
        color = identify_tilt(advertisement)
        if color is None or (color, advertisement.address) in found:
            return
        found.add((color, advertisement.address))
        typer.echo(f"Found {color} Tilt Hydrometer with address: {advertisement.address}")

    try:
        if seconds > 0:
            bluetooth.bleak_scan_session(seconds, on_advertisement)
        else:
            while True:
                bluetooth.bleak_scan_session(bluetooth.DEFAULT_SESSION_SECONDS, on_advertisement)
    except KeyboardInterrupt:
        typer.echo()
