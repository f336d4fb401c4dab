"""Unit tests for HTTP client wrapper."""

import pytest
import httpx

from tk_exporter.fetcher.http_client import HTTPClient


class TestHTTPClient:

    def test_initialization_with_defaults(self):
        with HTTPClient() as client:
            assert client.timeout == 15.0
            assert client.connect_timeout == 3.0

    def test_timeouts_are_applied(self):
        with HTTPClient(timeout=7.0, connect_timeout=2.0) as client:
            assert client._client.timeout.read == 7.0
            assert client._client.timeout.connect == 2.0

    def test_context_manager_lifecycle(self):
        client = HTTPClient()

        with client:
            assert client._client is not None

        assert client._client is None

    def test_open_is_idempotent(self):
        client = HTTPClient()
        client.open()
        inner = client._client
        client.open()

        assert client._client is inner
        client.close()

    def test_get_request_with_mock_transport(self):
        def handler(request):
            return httpx.Response(200, json={"ok": True})

        with HTTPClient() as client:
            client._client = httpx.Client(transport=httpx.MockTransport(handler))
            response = client.get("http://test.invalid/json/prices.php")

            assert response.status_code == 200
            assert response.json() == {"ok": True}

    def test_get_request_with_params(self):
        def handler(request):
            assert request.url.params["id"] == "abc"
            return httpx.Response(200, json={})

        with HTTPClient() as client:
            client._client = httpx.Client(transport=httpx.MockTransport(handler))
            client.get("http://test.invalid/json/detail.php", params={"id": "abc"})

    def test_get_without_open_raises(self):
        client = HTTPClient()

        with pytest.raises(RuntimeError, match="not initialized"):
            client.get("http://test.invalid/")
