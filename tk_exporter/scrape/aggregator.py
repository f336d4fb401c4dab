"""Thread-safe merger for collecting batch price results."""

import threading
from typing import Collection, Dict, List, Optional

from tk_exporter.models.data_models import Price


class ThreadSafePriceMerger:
    """
    Thread-safe merger for the partial price maps of one scrape cycle.

    Every batch worker merges its result here concurrently. The lock only
    guards the merge itself, the network calls run unserialized.
    """

    def __init__(self, known_ids: Optional[Collection[str]] = None):
        """
        Args:
            known_ids: Station ids that may be merged. Prices for other ids
                are dropped. None accepts every id.
        """
        self._lock = threading.Lock()
        self._known_ids = frozenset(known_ids) if known_ids is not None else None
        self._prices: Dict[str, Price] = {}
        self._dropped: List[str] = []

    def add_prices(self, prices: Dict[str, Price]) -> int:
        """
        Merge a partial price map.

        Args:
            prices: Mapping station id -> Price from one batch

        Returns:
            Number of prices merged
        """
        merged = 0
        with self._lock:
            for station_id, price in prices.items():
                if self._known_ids is not None and station_id not in self._known_ids:
                    self._dropped.append(station_id)
                    continue
                self._prices[station_id] = price
                merged += 1
        return merged

    def get_prices(self) -> Dict[str, Price]:
        """Get a copy of the merged price map."""
        with self._lock:
            return dict(self._prices)

    def get_dropped(self) -> List[str]:
        """Get the ids that were answered but aren't known stations."""
        with self._lock:
            return list(self._dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._prices)
