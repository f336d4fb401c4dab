"""HTTP client wrapper with timeout configuration."""

from typing import Any, Dict, Optional

import httpx


class HTTPClient:
    """
    HTTP client wrapper around httpx.Client.

    Provides:
    - Configurable total and connect timeouts
    - Connection pooling shared by all batch worker threads
    - Context manager for proper lifecycle management
    """

    def __init__(
        self,
        timeout: float = 15.0,
        connect_timeout: float = 3.0,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize HTTP client.

        Args:
            timeout: Read, write and pool timeout in seconds
            connect_timeout: Connection timeout in seconds
            headers: Default headers sent with every request
        """
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.headers = headers or {}
        self._client: Optional[httpx.Client] = None

    def open(self) -> "HTTPClient":
        """Create the underlying client if it doesn't exist yet."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                headers=self.headers,
            )
        return self

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HTTPClient":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Perform GET request.

        Args:
            url: URL to request
            params: Query parameters
            **kwargs: Additional arguments for httpx

        Returns:
            HTTP response
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'with' context manager or open().")

        return self._client.get(url, params=params, **kwargs)
