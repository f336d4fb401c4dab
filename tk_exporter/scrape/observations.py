"""Translation of station prices into metric observations."""

from typing import List, Mapping, Optional

from tk_exporter.models.data_models import (
    NAMESPACE,
    PRODUCTS,
    MetricDescriptor,
    Observation,
    Price,
    Station,
)
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.normalizer import station_labels


PRICE = MetricDescriptor(
    name=f"{NAMESPACE}_station_price_euro",
    documentation="Gas prices in EURO (€).",
    labelnames=("id", "product"),
)

OPEN = MetricDescriptor(
    name=f"{NAMESPACE}_station_open",
    documentation="Status of the station. 1 for OPEN, 0 for CLOSED.",
    labelnames=("id",),
)

DETAILS = MetricDescriptor(
    name=f"{NAMESPACE}_station_details",
    documentation="Associated details of a station. Always 1.",
    labelnames=("id", "name", "address", "city", "geohash", "brand"),
)

DESCRIPTORS = (PRICE, OPEN, DETAILS)


def build_observations(
    station: Station,
    price: Price,
    logger: Optional[StructuredLogger] = None
) -> List[Observation]:
    """
    Build the observations of one station for one cycle.

    The details observation is always emitted. A station reporting
    "no prices" gets nothing else, every other status yields an open
    observation (1 only for "open") plus one price observation per product
    with a numeric price.
    """
    labels = station_labels(station)
    observations = [
        Observation(DETAILS, tuple(labels[name] for name in DETAILS.labelnames), 1.0),
    ]

    if not price.has_prices:
        if logger:
            logger.station_no_prices(station_id=station.id, name=station.name)
        return observations

    observations.append(Observation(OPEN, (station.id,), 1.0 if price.is_open else 0.0))

    for product in PRODUCTS:
        value = price.product_price(product)
        if value is not None:
            observations.append(Observation(PRICE, (station.id, product), value))

    return observations


def observations_for_prices(
    stations: Mapping[str, Station],
    prices: Mapping[str, Price],
    logger: Optional[StructuredLogger] = None
) -> List[Observation]:
    """Build observations for every priced station, in station id order."""
    observations: List[Observation] = []
    for station_id in sorted(prices):
        station = stations.get(station_id)
        if station is None:
            continue
        observations.extend(build_observations(station, prices[station_id], logger))
    return observations
