"""Scrape coordinator running one fan-out/fan-in collection cycle."""

import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from tk_exporter.exporter.metrics import ExporterMetrics
from tk_exporter.fetcher.api_client import MAX_PRICE_IDS
from tk_exporter.models.data_models import Observation, Price
from tk_exporter.models.errors import RemoteLookupError, ScrapeError
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.aggregator import ThreadSafePriceMerger
from tk_exporter.scrape.observations import observations_for_prices
from tk_exporter.scrape.registry import StationRegistry


BATCH_SIZE = MAX_PRICE_IDS


def plan_batches(station_ids: Sequence[str], batch_size: int = BATCH_SIZE) -> List[List[str]]:
    """
    Split station ids into consecutive batches of at most batch_size ids.

    Args:
        station_ids: Ids in the order they should be requested
        batch_size: Maximum ids per batch

    Returns:
        ceil(len(station_ids) / batch_size) batches covering every id once
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got: {batch_size}")
    ids = list(station_ids)
    return [ids[i:i + batch_size] for i in range(0, len(ids), batch_size)]


class ScrapeCoordinator:
    """
    Runs collection cycles against the Tankerkoenig API.

    Responsibilities:
    - Partition the registry into batches the prices endpoint accepts
    - Fetch all batches in parallel worker threads
    - Merge partial results under the merger's lock
    - Turn the merged prices into observations
    - Keep the exporter health metrics up to date

    Not safe for concurrent run_cycle calls, the collector serializes them.
    """

    def __init__(
        self,
        client,
        registry: StationRegistry,
        metrics: Optional[ExporterMetrics] = None,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Args:
            client: Tankerkoenig API client providing prices(ids)
            registry: Stations to scrape
            metrics: Health metrics updated by every cycle
            logger: Optional structured logger for telemetry
        """
        self.client = client
        self.registry = registry
        self.metrics = metrics or ExporterMetrics()
        self.logger = logger

    def run_cycle(self) -> List[Observation]:
        """
        Perform one complete collection cycle.

        Returns:
            Observations for every station the API returned prices for

        Raises:
            RemoteLookupError: If any batch failed. Partial results are discarded.
            ScrapeError: If the fetched prices couldn't be turned into observations
        """
        start = time.monotonic()
        self.metrics.count_scrape()

        try:
            batches = plan_batches(list(self.registry))
            if self.logger:
                self.logger.scrape_start(stations=len(self.registry), batches=len(batches))

            try:
                prices = self.fetch_prices(batches)
                observations = observations_for_prices(self.registry, prices, self.logger)
            except RemoteLookupError:
                self.metrics.mark_failure()
                raise
            except Exception as e:
                self.metrics.mark_failure()
                raise ScrapeError(f"building observations failed: {e}") from e

            self.metrics.mark_success()

            if self.logger:
                self.logger.scrape_success(
                    stations=len(prices),
                    elapsed_ms=round((time.monotonic() - start) * 1000, 3),
                )
            return observations
        finally:
            self.metrics.observe_duration(time.monotonic() - start)

    def fetch_prices(self, batches: List[List[str]]) -> Dict[str, Price]:
        """
        Fetch all batches concurrently and merge their results.

        One worker thread per batch. On the first failure, batches that haven't
        started are cancelled, running ones finish and their results are thrown
        away together with everything merged so far.

        Raises:
            RemoteLookupError: The error of the first failed batch in batch order
        """
        merger = ThreadSafePriceMerger(known_ids=self.registry.keys())
        if not batches:
            return merger.get_prices()

        with ThreadPoolExecutor(
            max_workers=len(batches),
            thread_name_prefix="tk-batch",
        ) as executor:
            futures: List[Future] = [
                executor.submit(self._fetch_batch, index, batch, merger)
                for index, batch in enumerate(batches)
            ]
            _, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in not_done:
                future.cancel()

        for future in futures:
            if future.cancelled() or not future.done():
                continue
            error = future.exception()
            if error is None:
                continue
            if isinstance(error, RemoteLookupError):
                raise error
            raise RemoteLookupError(f"price lookup failed: {error}") from error

        dropped = merger.get_dropped()
        if dropped and self.logger:
            self.logger.debug("unknown_station_price", station_ids=dropped)

        return merger.get_prices()

    def _fetch_batch(
        self,
        index: int,
        batch: List[str],
        merger: ThreadSafePriceMerger
    ) -> int:
        """Fetch one batch and merge it. Runs in a worker thread."""
        start = time.monotonic()
        try:
            prices = self.client.prices(batch)
        except Exception as e:
            if self.logger:
                self.logger.batch_error(batch=index, station_ids=batch, error=str(e))
            raise

        merged = merger.add_prices(prices)
        if self.logger:
            self.logger.batch_success(
                batch=index,
                batch_size=len(batch),
                elapsed_ms=round((time.monotonic() - start) * 1000, 3),
            )
        return merged
