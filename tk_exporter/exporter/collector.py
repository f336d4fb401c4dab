"""Prometheus collector serving one scrape cycle per collect."""

import threading
from typing import Dict, Iterable, Iterator, List, Optional

from prometheus_client.metrics_core import GaugeMetricFamily, Metric

from tk_exporter.models.data_models import MetricDescriptor, Observation
from tk_exporter.models.errors import ExporterError
from tk_exporter.monitoring.logger import StructuredLogger
from tk_exporter.scrape.coordinator import ScrapeCoordinator
from tk_exporter.scrape.observations import DESCRIPTORS


def observation_families(observations: Iterable[Observation]) -> List[GaugeMetricFamily]:
    """
    Group observations into one gauge family per descriptor.

    Families are returned in DESCRIPTORS order. Descriptors without
    observations are left out.
    """
    families: Dict[MetricDescriptor, GaugeMetricFamily] = {}
    for observation in observations:
        descriptor = observation.descriptor
        family = families.get(descriptor)
        if family is None:
            family = GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.labelnames),
            )
            families[descriptor] = family
        family.add_metric(list(observation.labels), observation.value)

    return [families[d] for d in DESCRIPTORS if d in families]


class TankerkoenigCollector:
    """
    Custom collector scraping the Tankerkoenig API on every collect.

    Concurrent collects are serialized: a scrape arriving while a cycle is
    running waits for it to finish and then runs its own cycle.
    """

    def __init__(
        self,
        coordinator: ScrapeCoordinator,
        logger: Optional[StructuredLogger] = None
    ):
        self.coordinator = coordinator
        self.metrics = coordinator.metrics
        self.logger = logger or coordinator.logger
        self._lock = threading.Lock()

    def collect(self) -> Iterator[Metric]:
        """
        Run one scrape cycle and yield its metrics plus the health metrics.

        A failed cycle is logged and only shows in tk_up and
        tk_exporter_scrape_failures_total, it never raises.
        """
        with self._lock:
            try:
                observations = self.coordinator.run_cycle()
            except ExporterError as e:
                if self.logger:
                    self.logger.scrape_failed(error=f"cannot scrape tankerkoenig api: {e}")
                observations = []

            families: List[Metric] = list(observation_families(observations))
            families.extend(self.metrics.collect())

        yield from families

    def describe(self) -> Iterator[Metric]:
        """
        Describe the collected families without touching the API.

        Registering a collector that has describe() keeps the registry from
        calling collect() at registration time.
        """
        for descriptor in DESCRIPTORS:
            yield GaugeMetricFamily(
                descriptor.name,
                descriptor.documentation,
                labels=list(descriptor.labelnames),
            )
        yield from self.metrics.describe()
