"""CLI entry point for the Tankerkoenig exporter.

This module provides the command-line interface: it loads the configuration,
resolves the monitored stations and serves the metrics endpoint.
"""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from tk_exporter import __version__
from tk_exporter.exporter.collector import TankerkoenigCollector
from tk_exporter.exporter.server import create_app, create_registry
from tk_exporter.fetcher.api_client import TankerkoenigClient
from tk_exporter.models.config import ConfigManager, ExporterConfig
from tk_exporter.models.data_models import Observation
from tk_exporter.models.errors import ConfigurationError, RemoteLookupError, ScrapeError, StationNotFoundError
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.coordinator import ScrapeCoordinator
from tk_exporter.scrape.registry import StationRegistry


console = Console(stderr=True)


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration YAML file (default: config/config.yaml if present)",
)
@click.option(
    "--api-key",
    help="API key for the Tankerkoenig API (default: TANKERKOENIG_API_KEY environment variable)",
)
@click.option(
    "--station",
    "-s",
    "stations",
    multiple=True,
    help="UUID of a station. Repeat the flag or pass a comma-separated list",
)
@click.option(
    "--location",
    help="Geohash of the location at which to search for stations",
)
@click.option(
    "--radius",
    type=int,
    help="Kilometer radius in which to search for stations (default: 10)",
)
@click.option(
    "--listen-address",
    help="Listen address for the web server (default: :9386)",
)
@click.option(
    "--telemetry-path",
    help="Path under which to expose metrics (default: /metrics)",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config)",
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single scrape, print the observations and exit",
)
@click.version_option(version=__version__, prog_name="tankerkoenig-exporter")
def main(
    config: Optional[Path],
    api_key: Optional[str],
    stations: Tuple[str, ...],
    location: Optional[str],
    radius: Optional[int],
    listen_address: Optional[str],
    telemetry_path: Optional[str],
    log_level: Optional[str],
    once: bool,
) -> None:
    """
    Tankerkoenig Exporter - Prometheus metrics for German fuel prices.

    Resolves the monitored stations once at startup, then queries current
    prices from the Tankerkoenig API on every Prometheus scrape.

    --station is mutually exclusive with --location.

    Examples:

        # Monitor a single station
        $ tankerkoenig-exporter --station 51d4b55e-a095-1aa0-e100-80009459e03a

        # Monitor all stations within 3 km of a location
        $ tankerkoenig-exporter --location u0yjjd6jk0zj7 --radius 3

        # Print the current prices once
        $ tankerkoenig-exporter --station 51d4b55e-a095-1aa0-e100-80009459e03a --once
    """
    try:
        cli_overrides = {
            "api_key": api_key,
            "stations": list(stations),
            "location": location,
            "radius": radius,
            "listen_address": listen_address,
            "telemetry_path": telemetry_path,
            "log_level": log_level.upper() if log_level else None,
        }

        config_manager = ConfigManager(config)
        exporter_config = config_manager.load_config(cli_overrides)
        logger = StructuredLogger(level=exporter_config.log_level)

        with TankerkoenigClient.from_config(exporter_config, logger=logger) as client:
            registry = _build_registry(exporter_config, client, logger)
            coordinator = ScrapeCoordinator(client, registry, logger=logger)

            if once:
                sys.exit(0 if _run_once(coordinator) else 1)

            _display_config_summary(exporter_config, registry)
            _serve(exporter_config, coordinator, logger)

        sys.exit(0)

    except ConfigurationError as e:
        _error_with_hint(f"invalid configuration: {e}", "run with --help to see all options")
        sys.exit(1)
    except StationNotFoundError as e:
        _error_with_hint(str(e), "check the station id, e.g. on https://creativecommons.tankerkoenig.de")
        sys.exit(1)
    except RemoteLookupError as e:
        _error_with_hint(f"could not resolve stations: {e}", "is the API key valid and the API reachable?")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Exporter interrupted by user[/yellow]")
        sys.exit(130)  # Standard exit code for SIGINT


def _build_registry(
    config: ExporterConfig,
    client: TankerkoenigClient,
    logger: StructuredLogger,
) -> StationRegistry:
    """Resolve the stations selected by the configuration."""
    if config.stations:
        return StationRegistry.from_ids(client, config.stations, logger=logger)
    return StationRegistry.from_location(client, config.location, config.radius, logger=logger)


def _serve(
    config: ExporterConfig,
    coordinator: ScrapeCoordinator,
    logger: StructuredLogger,
) -> None:
    """Serve the metrics endpoint until interrupted."""
    collector = TankerkoenigCollector(coordinator, logger=logger)
    app = create_app(create_registry(collector), telemetry_path=config.telemetry_path)

    logger.log(
        "server_start",
        address=config.listen_address,
        telemetry_path=config.telemetry_path,
        stations=len(coordinator.registry),
    )
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


def _run_once(coordinator: ScrapeCoordinator) -> bool:
    """Run a single cycle and print its observations. Returns False on failure."""
    try:
        observations = coordinator.run_cycle()
    except (RemoteLookupError, ScrapeError) as e:
        console.print(f"[red]Error:[/red] scrape failed: {e}", style="bold red")
        return False

    _display_observations(observations)
    return True


def _display_config_summary(config: ExporterConfig, registry: StationRegistry) -> None:
    """Display configuration summary before serving."""
    console.print("\n[bold cyan]Tankerkoenig Exporter[/bold cyan]")
    if config.stations:
        console.print(f"  Stations: {len(registry)} (by id)")
    else:
        console.print(f"  Stations: {len(registry)} within {config.radius} km of {config.location}")
    console.print(f"  Listen Address: {config.listen_address}")
    console.print(f"  Telemetry Path: {config.telemetry_path}")
    console.print()


def _display_observations(observations: List[Observation]) -> None:
    """Display observations as a table on stdout."""
    table = Table(title="Current Observations")
    table.add_column("Metric", style="cyan")
    table.add_column("Labels")
    table.add_column("Value", justify="right", style="green")

    for observation in observations:
        labels = ", ".join(f"{k}={v}" for k, v in observation.label_dict().items())
        table.add_row(observation.descriptor.name, labels, f"{observation.value:g}")

    Console().print(table)


def _error_with_hint(message: str, *hints: str) -> None:
    console.print(f"[red]Error:[/red] {message}", style="bold red")
    for hint in hints:
        console.print(f"[yellow]Hint:[/yellow] {hint}")


if __name__ == "__main__":
    main()
