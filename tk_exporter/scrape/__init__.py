"""Scrape cycle: station registry, batched price fetching and observation emission."""

from .aggregator import ThreadSafePriceMerger
from .coordinator import BATCH_SIZE, ScrapeCoordinator, plan_batches
from .observations import DESCRIPTORS, build_observations
from .registry import StationRegistry

__all__ = [
    "BATCH_SIZE",
    "DESCRIPTORS",
    "ScrapeCoordinator",
    "StationRegistry",
    "ThreadSafePriceMerger",
    "build_observations",
    "plan_batches",
]
