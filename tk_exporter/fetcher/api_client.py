"""Client for the Tankerkoenig fuel price API."""

import json
from typing import Any, Dict, List, Optional

import httpx

from tk_exporter import __version__
from tk_exporter.fetcher.http_client import HTTPClient
from tk_exporter.fetcher.retry_handler import RetryHandler
from tk_exporter.models.config import DEFAULT_BASE_URL, ExporterConfig
from tk_exporter.models.data_models import Price, Station
from tk_exporter.models.errors import RemoteLookupError
from tk_exporter.monitoring.logger import StructuredLogger


# The prices endpoint accepts at most ten station ids per request.
MAX_PRICE_IDS = 10

USER_AGENT = f"tankerkoenig-exporter/{__version__}"


class TankerkoenigClient:
    """
    Tankerkoenig API client.

    Responsibilities:
    - Look up a single station by id (detail.php)
    - List stations around a point (list.php)
    - Fetch current prices for up to ten stations (prices.php)
    - Translate every HTTP, transport and payload failure into RemoteLookupError

    Safe to share between threads, httpx.Client is thread safe.
    """

    def __init__(
        self,
        api_key: str,
        http_client: Optional[HTTPClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        retry_handler: Optional[RetryHandler] = None,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize API client.

        Args:
            api_key: Personal API key sent with every request
            http_client: HTTP client wrapper (a default one is created if omitted)
            base_url: API base URL
            retry_handler: Retry policy for transient failures (no retries if omitted)
            logger: Optional structured logger for telemetry
        """
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.http_client = http_client or HTTPClient(headers={"User-Agent": USER_AGENT})
        self.retry_handler = retry_handler or RetryHandler(max_retries=0)
        self.logger = logger

    @classmethod
    def from_config(
        cls,
        config: ExporterConfig,
        logger: Optional[StructuredLogger] = None
    ) -> "TankerkoenigClient":
        """Create a client with HTTP timeouts and retry policy from configuration."""
        http_client = HTTPClient(
            timeout=config.request_timeout,
            connect_timeout=config.connect_timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

        def on_retry(attempt: int, error: RemoteLookupError, delay: float) -> None:
            if logger:
                logger.request_retry(
                    error=str(error),
                    attempt=attempt,
                    status=error.status_code,
                    delay=round(delay, 3),
                )

        retry_handler = RetryHandler(
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            on_retry=on_retry,
        )
        return cls(
            config.api_key,
            http_client=http_client,
            base_url=config.base_url,
            retry_handler=retry_handler,
            logger=logger,
        )

    def __enter__(self) -> "TankerkoenigClient":
        self.http_client.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.http_client.close()

    def detail(self, station_id: str) -> Optional[Station]:
        """
        Look up a station by id.

        Returns:
            The station, or None if the API doesn't know the id

        Raises:
            RemoteLookupError: On network or API failure
        """
        data = self._get("json/detail.php", {"id": station_id}, require_ok=False)

        station = data.get("station")
        if not isinstance(station, dict) or not station.get("id"):
            return None
        return Station.from_api(station)

    def list(self, lat: float, lng: float, radius: int) -> List[Station]:
        """
        List all stations within radius kilometers of a point.

        Raises:
            RemoteLookupError: On network or API failure
        """
        params = {
            "lat": f"{lat:.13f}",
            "lng": f"{lng:.13f}",
            "rad": str(radius),
            "type": "all",
            "sort": "dist",
        }
        data = self._get("json/list.php", params)

        stations = data.get("stations") or []
        if not isinstance(stations, list):
            raise RemoteLookupError("list.php: unexpected stations payload")
        return [Station.from_api(s) for s in stations if isinstance(s, dict) and s.get("id")]

    def prices(self, station_ids: List[str]) -> Dict[str, Price]:
        """
        Fetch current prices for up to ten stations.

        Args:
            station_ids: Station ids, at most MAX_PRICE_IDS

        Returns:
            Mapping station id -> Price for the ids the API answered

        Raises:
            ValueError: If more than MAX_PRICE_IDS ids are requested
            RemoteLookupError: On network or API failure
        """
        if len(station_ids) > MAX_PRICE_IDS:
            raise ValueError(
                f"at most {MAX_PRICE_IDS} station ids per price request, got: {len(station_ids)}"
            )
        if not station_ids:
            return {}

        ids = json.dumps(list(station_ids), separators=(",", ":"))
        data = self._get("json/prices.php", {"ids": ids})

        prices = data.get("prices") or {}
        if not isinstance(prices, dict):
            raise RemoteLookupError("prices.php: unexpected prices payload")
        return {
            station_id: Price.from_api(price)
            for station_id, price in prices.items()
            if isinstance(price, dict)
        }

    def _get(
        self,
        path: str,
        params: Dict[str, Any],
        require_ok: bool = True
    ) -> Dict[str, Any]:
        """Perform a GET request with retries and return the decoded body."""
        return self.retry_handler.execute(self._request, path, params, require_ok)

    def _request(
        self,
        path: str,
        params: Dict[str, Any],
        require_ok: bool
    ) -> Dict[str, Any]:
        """
        Perform a single GET request without retry logic.

        Raises:
            RemoteLookupError: retryable for timeouts, transport errors and
                429/502/503/504 responses, permanent otherwise
        """
        query = {**params, "apikey": self.api_key}

        try:
            response = self.http_client.get(self.base_url + path, params=query)
        except httpx.TimeoutException as e:
            raise RemoteLookupError(f"{path}: timeout: {e}", retryable=True) from e
        except httpx.TransportError as e:
            raise RemoteLookupError(f"{path}: {e}", retryable=True) from e

        status_code = response.status_code
        if not 200 <= status_code <= 299:
            raise RemoteLookupError(
                f"{path}: {status_code} {_error_message(response)}".rstrip(),
                status_code=status_code,
                retryable=self.retry_handler.is_retryable(status_code=status_code),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteLookupError(f"{path}: invalid JSON response: {e}", status_code=status_code) from e

        if not isinstance(data, dict):
            raise RemoteLookupError(f"{path}: unexpected response payload", status_code=status_code)

        if require_ok and data.get("ok") is False:
            raise RemoteLookupError(
                f"{path}: {data.get('message') or 'request rejected'}",
                status_code=status_code,
            )

        return data


def _error_message(response: httpx.Response) -> str:
    """Extract the API's error message from a failed response, if any."""
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        return str(data.get("message") or "")
    return ""
