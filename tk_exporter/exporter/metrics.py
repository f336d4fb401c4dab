"""Exporter health metrics kept across scrape cycles."""

from typing import Dict, Iterator

from prometheus_client import Counter, Gauge
from prometheus_client.metrics_core import Metric

from tk_exporter.models.data_models import NAMESPACE


class ExporterMetrics:
    """
    Process-lifetime metrics describing the scrapes themselves.

    The instruments are not registered anywhere, the collector yields them
    next to the station metrics on every collect. Only mutated while the
    collector's cycle lock is held.
    """

    def __init__(self):
        self.up = Gauge(
            "up",
            "Was the last scrape of the Tankerkoenig API successful?",
            namespace=NAMESPACE,
            registry=None,
        )
        self.scrape_duration = Gauge(
            "scrape_duration_seconds",
            "Duration of the scrape of metrics from the Tankerkoenig API.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=None,
        )
        self.total_scrapes = Counter(
            "scrapes_total",
            "Total Tankerkoenig API scrapes.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=None,
        )
        self.failed_scrapes = Counter(
            "scrape_failures_total",
            "Total amount of scrape failures.",
            namespace=NAMESPACE,
            subsystem="exporter",
            registry=None,
        )

    def count_scrape(self) -> None:
        self.total_scrapes.inc()

    def mark_success(self) -> None:
        self.up.set(1)

    def mark_failure(self) -> None:
        self.up.set(0)
        self.failed_scrapes.inc()

    def observe_duration(self, seconds: float) -> None:
        self.scrape_duration.set(seconds)

    def collect(self) -> Iterator[Metric]:
        """Yield the metric families of all health instruments."""
        for instrument in (self.up, self.scrape_duration, self.failed_scrapes, self.total_scrapes):
            yield from instrument.collect()

    def describe(self) -> Iterator[Metric]:
        for instrument in (self.up, self.scrape_duration, self.failed_scrapes, self.total_scrapes):
            yield from instrument.describe()

    def values(self) -> Dict[str, float]:
        """
        Snapshot of the current values keyed by sample name.

        Returns:
            Dict with tk_up, tk_exporter_scrape_duration_seconds,
            tk_exporter_scrapes_total and tk_exporter_scrape_failures_total
        """
        snapshot: Dict[str, float] = {}
        for metric in self.collect():
            for sample in metric.samples:
                if sample.name.endswith("_created"):
                    continue
                snapshot[sample.name] = sample.value
        return snapshot
