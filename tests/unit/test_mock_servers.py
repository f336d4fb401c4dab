"""Unit tests for the mock Tankerkoenig API."""

import json

import pytest
from fastapi.testclient import TestClient

from tk_exporter.mock_servers import create_mock_app, generate_prices, generate_stations


API_KEY = "00000000-0000-0000-0000-000000000002"


class TestGenerators:

    def test_stations_are_deterministic(self):
        assert generate_stations(5, seed=1) == generate_stations(5, seed=1)
        assert generate_stations(5, seed=1) != generate_stations(5, seed=2)

    def test_station_schema(self):
        station = generate_stations(1)[0]

        assert station["id"] == "00000000-0000-4000-8000-000000000000"
        for key in ("name", "brand", "street", "houseNumber", "postCode", "place", "lat", "lng"):
            assert key in station

    def test_prices_use_api_markers(self):
        ids = [s["id"] for s in generate_stations(50)]
        prices = generate_prices(ids)

        assert set(prices) == set(ids)
        statuses = {p["status"] for p in prices.values()}
        assert statuses <= {"open", "closed", "no prices"}
        for price in prices.values():
            if price["status"] == "no prices":
                assert list(price) == ["status"]
            else:
                assert all(price[p] is False or isinstance(price[p], float) for p in ("diesel", "e5", "e10"))


class TestMockServer:

    @pytest.fixture
    def stations(self):
        return generate_stations(15)

    @pytest.fixture
    def app(self, stations):
        prices = generate_prices([s["id"] for s in stations])
        return create_mock_app(stations, prices, failing_ids=[stations[-1]["id"]])

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detail(self, client, stations):
        response = client.get("/json/detail.php", params={"id": stations[0]["id"], "apikey": API_KEY})

        data = response.json()
        assert data["ok"] is True
        assert data["station"]["id"] == stations[0]["id"]

    def test_detail_unknown_station(self, client):
        response = client.get("/json/detail.php", params={"id": "nope", "apikey": API_KEY})
        assert response.json()["station"] == {}

    def test_wrong_api_key(self, client, stations):
        response = client.get("/json/detail.php", params={"id": stations[0]["id"], "apikey": "wrong"})

        assert response.status_code == 200
        assert response.json()["ok"] is False

    def test_list_sorted_by_distance(self, client):
        response = client.get(
            "/json/list.php",
            params={"lat": 52.52, "lng": 13.40, "rad": 25, "apikey": API_KEY},
        )

        found = response.json()["stations"]
        assert len(found) == 15
        distances = [s["dist"] for s in found]
        assert distances == sorted(distances)

    def test_list_respects_radius(self, client):
        response = client.get(
            "/json/list.php",
            params={"lat": 48.14, "lng": 11.58, "rad": 5, "apikey": API_KEY},
        )
        assert response.json()["stations"] == []

    def test_list_radius_out_of_range(self, client):
        response = client.get(
            "/json/list.php",
            params={"lat": 52.52, "lng": 13.40, "rad": 30, "apikey": API_KEY},
        )
        assert response.json()["ok"] is False

    def test_prices(self, client, stations):
        ids = [s["id"] for s in stations[:3]] + ["unknown"]

        response = client.get("/json/prices.php", params={"ids": json.dumps(ids), "apikey": API_KEY})

        prices = response.json()["prices"]
        assert set(prices) == set(ids)
        assert prices["unknown"] == {"status": "no stations"}

    def test_prices_limit(self, client, stations):
        ids = [s["id"] for s in stations[:11]]

        response = client.get("/json/prices.php", params={"ids": json.dumps(ids), "apikey": API_KEY})

        assert response.json()["ok"] is False

    def test_failing_ids(self, client, stations):
        ids = [stations[-1]["id"]]

        response = client.get("/json/prices.php", params={"ids": json.dumps(ids), "apikey": API_KEY})

        assert response.status_code == 503

    def test_requests_are_recorded(self, app, client, stations):
        client.get("/json/detail.php", params={"id": stations[0]["id"], "apikey": API_KEY})
        client.get("/json/prices.php", params={"ids": json.dumps([stations[0]["id"]]), "apikey": API_KEY})

        assert [kind for kind, _ in app.state.requests] == ["detail", "prices"]


def test_error_rate():
    stations = generate_stations(3)
    app = create_mock_app(stations, generate_prices([s["id"] for s in stations]), random_seed=1, error_rate=1.0)

    response = TestClient(app).get(
        "/json/prices.php",
        params={"ids": json.dumps([stations[0]["id"]]), "apikey": API_KEY},
    )

    assert response.status_code == 503
