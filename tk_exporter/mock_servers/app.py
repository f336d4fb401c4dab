"""FastAPI mock of the Tankerkoenig API for testing the exporter."""

import json
import math
import os
import random
import time
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from tk_exporter.models.data_models import PRODUCTS


LICENSE = "CC BY 4.0 -  https://creativecommons.tankerkoenig.de"

CITIES = ["BERLIN", "HAMBURG", "MÜNCHEN", "KÖLN", "FRANKFURT AM MAIN"]
STREETS = ["HAUPTSTRASSE", "BAHNHOFSTR.", "AM MARKT", "BERLINER ALLEE", "KÖNIGSWEG"]
BRANDS = ["ARAL", "Shell", "ESSO", "TotalEnergies", "JET"]
STATUSES = ["open", "open", "open", "closed", "no prices"]


def generate_stations(count: int, seed: int = 42, lat: float = 52.52, lng: float = 13.40) -> List[Dict]:
    """
    Generate deterministic station records in the API's schema.

    Args:
        count: Number of stations
        seed: Random seed
        lat: Latitude the stations scatter around
        lng: Longitude the stations scatter around
    """
    rng = random.Random(seed)
    stations = []
    for i in range(count):
        stations.append({
            "id": f"00000000-0000-4000-8000-{i:012d}",
            "name": f"{rng.choice(BRANDS)} Tankstelle {i + 1}",
            "brand": rng.choice(BRANDS),
            "street": rng.choice(STREETS),
            "houseNumber": str(rng.randint(1, 200)),
            "postCode": rng.randint(10000, 99999),
            "place": rng.choice(CITIES),
            "lat": round(lat + rng.uniform(-0.05, 0.05), 6),
            "lng": round(lng + rng.uniform(-0.05, 0.05), 6),
            "isOpen": True,
        })
    return stations


def generate_prices(station_ids: List[str], seed: int = 42) -> Dict[str, Dict]:
    """Generate deterministic price records, including the API's odd markers."""
    rng = random.Random(seed)
    prices = {}
    for station_id in station_ids:
        status = rng.choice(STATUSES)
        if status == "no prices":
            prices[station_id] = {"status": status}
            continue
        record = {"status": status}
        for product in PRODUCTS:
            # The API reports unavailable products as false
            record[product] = round(rng.uniform(1.5, 2.1), 3) if rng.random() > 0.1 else False
        prices[station_id] = record
    return prices


def _distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 6371.0 * 2 * math.asin(math.sqrt(a))


def create_mock_app(
    stations: List[Dict],
    prices: Dict[str, Dict],
    api_key: str = "00000000-0000-0000-0000-000000000002",
    random_seed: Optional[int] = None,
    error_rate: float = 0.0,
    extra_latency_ms: int = 0,
    failing_ids: Optional[List[str]] = None
) -> FastAPI:
    """
    Create a FastAPI mock of the Tankerkoenig API with configurable behavior.

    Args:
        stations: Station records served by detail.php and list.php
        prices: Price records by station id served by prices.php
        api_key: The only API key accepted
        random_seed: Seed for deterministic error injection
        error_rate: Probability of returning 5xx errors on prices.php (0.0-1.0)
        extra_latency_ms: Additional latency in milliseconds
        failing_ids: Price requests containing any of these ids fail with 503

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Mock Tankerkoenig API")
    rng = random.Random(random_seed)
    stations_by_id = {s["id"]: s for s in stations}
    failing = set(failing_ids or [])
    app.state.requests = []

    def check_key(apikey: str) -> Optional[JSONResponse]:
        if apikey != api_key:
            return JSONResponse(
                {"ok": False, "message": "apikey nicht angegeben, falsch, oder im falschen Format"}
            )
        return None

    def simulate_latency() -> None:
        if extra_latency_ms > 0:
            time.sleep(extra_latency_ms / 1000.0)

    @app.get("/json/detail.php")
    def detail(id: str = Query(...), apikey: str = Query("")):
        """Get the details of one station."""
        app.state.requests.append(("detail", id))
        simulate_latency()
        if (rejected := check_key(apikey)) is not None:
            return rejected

        station = stations_by_id.get(id)
        if station is None:
            return {"ok": True, "license": LICENSE, "data": "MTS-K", "status": "ok", "station": {}}
        return {"ok": True, "license": LICENSE, "data": "MTS-K", "status": "ok", "station": station}

    @app.get("/json/list.php")
    def list_stations(
        lat: float = Query(...),
        lng: float = Query(...),
        rad: float = Query(...),
        apikey: str = Query(""),
        type: str = Query("all"),
        sort: str = Query("dist"),
    ):
        """List stations within rad kilometers."""
        app.state.requests.append(("list", (lat, lng, rad)))
        simulate_latency()
        if (rejected := check_key(apikey)) is not None:
            return rejected
        if not 0 < rad <= 25:
            return {"ok": False, "status": "error", "message": "Radius muss zwischen 1 und 25 km liegen"}

        found = []
        for station in stations:
            dist = _distance_km(lat, lng, station["lat"], station["lng"])
            if dist <= rad:
                found.append({**station, "dist": round(dist, 1)})
        found.sort(key=lambda s: s["dist"])
        return {"ok": True, "license": LICENSE, "data": "MTS-K", "status": "ok", "stations": found}

    @app.get("/json/prices.php")
    def get_prices(ids: str = Query(...), apikey: str = Query("")):
        """Get current prices for up to ten stations."""
        simulate_latency()
        if (rejected := check_key(apikey)) is not None:
            return rejected

        try:
            requested = json.loads(ids)
        except ValueError:
            requested = [part.strip() for part in ids.split(",") if part.strip()]
        app.state.requests.append(("prices", tuple(requested)))

        if len(requested) > 10:
            return {"ok": False, "message": "maximal 10 IDs erlaubt"}

        if failing.intersection(requested) or rng.random() < error_rate:
            raise HTTPException(status_code=503, detail="Simulated error")

        result = {}
        for station_id in requested:
            if station_id in prices:
                result[station_id] = prices[station_id]
            else:
                result[station_id] = {"status": "no stations"}
        return {"ok": True, "license": LICENSE, "data": "MTS-K", "prices": result}

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": "mock-tankerkoenig"}

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads STATIONS and RANDOM_SEED from the environment.
    """
    seed = int(os.getenv("RANDOM_SEED", 42))
    stations = generate_stations(int(os.getenv("STATIONS", 23)), seed=seed)
    prices = generate_prices([s["id"] for s in stations], seed=seed)
    return create_mock_app(
        stations,
        prices,
        api_key=os.getenv("TANKERKOENIG_API_KEY", "00000000-0000-0000-0000-000000000002"),
        random_seed=seed,
        error_rate=float(os.getenv("ERROR_RATE", 0.0)),
        extra_latency_ms=int(os.getenv("EXTRA_LATENCY_MS", 0)),
    )


# Default app for running directly
app = create_app()
