"""Tankerkoenig API access with timeouts and retries."""

from .api_client import MAX_PRICE_IDS, TankerkoenigClient
from .http_client import HTTPClient
from .retry_handler import RetryHandler

__all__ = ["HTTPClient", "MAX_PRICE_IDS", "RetryHandler", "TankerkoenigClient"]
