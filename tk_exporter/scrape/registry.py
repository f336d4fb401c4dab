"""Station registry resolved once at startup."""

from dataclasses import replace
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional

from tk_exporter.models.data_models import Station
from tk_exporter.models.errors import ConfigurationError, StationNotFoundError
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.normalizer import decode_geohash


class StationRegistry(Mapping[str, Station]):
    """
    Read-only mapping station id -> Station.

    The set of stations is fixed at construction and is the universe of ids
    every scrape cycle asks prices for. Reads need no locking.
    """

    def __init__(self, stations: Iterable[Station]):
        by_id = {}
        for station in stations:
            by_id.setdefault(station.id, station)
        self._stations: Mapping[str, Station] = MappingProxyType(by_id)

    @classmethod
    def from_ids(
        cls,
        client,
        station_ids: Iterable[str],
        logger: Optional[StructuredLogger] = None
    ) -> "StationRegistry":
        """
        Resolve explicit station ids through the detail lookup.

        Fails fast: the first unknown id or failed request aborts and no
        registry is produced.

        Args:
            client: Tankerkoenig API client
            station_ids: Ids to resolve, duplicates are looked up once
            logger: Optional structured logger

        Raises:
            ConfigurationError: If no ids are given
            StationNotFoundError: If the API doesn't know an id
            RemoteLookupError: If a lookup request fails
        """
        ids: List[str] = list(dict.fromkeys(station_ids))
        if not ids:
            raise ConfigurationError("at least one station id is required")

        stations = []
        for station_id in ids:
            station = client.detail(station_id)
            if station is None or not station.id:
                raise StationNotFoundError(station_id)
            if logger:
                logger.station_resolved(station_id=station_id, name=station.name)
            # Keyed by the requested id so prices map back to it
            if station.id != station_id:
                station = replace(station, id=station_id)
            stations.append(station)

        return cls(stations)

    @classmethod
    def from_location(
        cls,
        client,
        location: str,
        radius: int,
        logger: Optional[StructuredLogger] = None
    ) -> "StationRegistry":
        """
        Register every station within radius kilometers of a geohash.

        An empty search result is a valid, empty registry.

        Raises:
            ConfigurationError: If location isn't a valid geohash
            RemoteLookupError: If the list request fails
        """
        try:
            lat, lng = decode_geohash(location)
        except ValueError as e:
            raise ConfigurationError(f"invalid location: {e}") from e

        stations = client.list(lat, lng, radius)
        if logger:
            logger.stations_listed(location=location, radius=radius, stations=len(stations))
        return cls(stations)

    def __getitem__(self, station_id: str) -> Station:
        return self._stations[station_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._stations)

    def __len__(self) -> int:
        return len(self._stations)

    def __repr__(self) -> str:
        return f"StationRegistry({len(self)} stations)"
