"""Exception hierarchy for the exporter."""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """Startup parameters are missing, invalid or mutually exclusive."""


class StationNotFoundError(ExporterError):
    """An explicitly requested station does not exist."""

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"station {station_id!r} was not found")


class RemoteLookupError(ExporterError):
    """
    A call to the Tankerkoenig API failed.

    Args:
        message: Human readable description
        status_code: HTTP status code if the server answered
        retryable: Whether repeating the request may succeed
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False
    ):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class ScrapeError(ExporterError):
    """A collection cycle failed after the price lookup succeeded."""
