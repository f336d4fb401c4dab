"""Structured logging for exporter monitoring."""

import json
import logging
from typing import Any, List, Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "tk_exporter", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        """
        Log structured event.

        Standard keys: event, station_id, batch, batch_size, stations,
                      status, attempt, elapsed_ms, error
        """
        if not self.logger.isEnabledFor(level):
            return
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def warning(self, event: str, **kwargs: Any) -> None:
        self.log(event, level=logging.WARNING, **kwargs)

    def debug(self, event: str, **kwargs: Any) -> None:
        self.log(event, level=logging.DEBUG, **kwargs)

    def station_resolved(self, station_id: str, name: str) -> None:
        self.log("station_resolved", station_id=station_id, name=name)

    def stations_listed(self, location: str, radius: int, stations: int) -> None:
        self.log("stations_listed", location=location, radius=radius, stations=stations)

    def scrape_start(self, stations: int, batches: int) -> None:
        self.log("scrape_start", stations=stations, batches=batches)

    def batch_success(self, batch: int, batch_size: int, elapsed_ms: float) -> None:
        self.debug("batch_success", batch=batch, batch_size=batch_size, elapsed_ms=elapsed_ms)

    def batch_error(self, batch: int, station_ids: List[str], error: str) -> None:
        self.warning("batch_error", batch=batch, station_ids=station_ids, error=error)

    def scrape_success(self, stations: int, elapsed_ms: float) -> None:
        self.log("scrape_success", stations=stations, elapsed_ms=elapsed_ms)

    def scrape_failed(self, error: str) -> None:
        self.warning("scrape_failed", error=error)

    def station_no_prices(self, station_id: str, name: str) -> None:
        self.warning("station_no_prices", station_id=station_id, name=name)

    def request_retry(self, error: str, attempt: int, status: Optional[int], delay: float) -> None:
        self.warning("request_retry", error=error, attempt=attempt, status=status, delay=delay)
