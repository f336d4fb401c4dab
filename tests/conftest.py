"""Pytest configuration and shared fixtures."""

import pytest

from tests.fixtures.sample_data import FakeTankerkoenigClient, make_prices, make_station, make_stations
from tk_exporter.exporter.metrics import ExporterMetrics
from tk_exporter.models.data_models import Price
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.coordinator import ScrapeCoordinator
from tk_exporter.scrape.registry import StationRegistry


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration tests independent of the developer's environment."""
    for var in (
        "TANKERKOENIG_API_KEY",
        "TK_EXPORTER_BASE_URL",
        "TK_EXPORTER_STATIONS",
        "TK_EXPORTER_LOCATION",
        "TK_EXPORTER_RADIUS",
        "TK_EXPORTER_REQUEST_TIMEOUT",
        "TK_EXPORTER_MAX_RETRIES",
        "TK_EXPORTER_LISTEN_ADDRESS",
        "TK_EXPORTER_TELEMETRY_PATH",
        "TK_EXPORTER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def logger():
    return StructuredLogger(name="tk_exporter.tests", level="DEBUG")


@pytest.fixture
def stations():
    """23 stations, enough for three batches."""
    return make_stations(23)


@pytest.fixture
def registry(stations):
    return StationRegistry(stations)


@pytest.fixture
def fake_client(stations):
    return FakeTankerkoenigClient(stations, make_prices([s.id for s in stations]))


@pytest.fixture
def coordinator(fake_client, registry, logger):
    return ScrapeCoordinator(fake_client, registry, metrics=ExporterMetrics(), logger=logger)


@pytest.fixture
def scenario():
    """Station A is open and sells diesel, station B reports no prices."""
    station_a = make_station("A", name="Aral Mitte", place="  BERLIN ", street="FRIEDRICHSTR.", house_number="12")
    station_b = make_station("B", name="Esso Nord", brand="ESSO")
    prices = {
        "A": Price(status="open", diesel=1.599),
        "B": Price(status="no prices"),
    }
    client = FakeTankerkoenigClient([station_a, station_b], prices)
    return client, StationRegistry([station_a, station_b])
