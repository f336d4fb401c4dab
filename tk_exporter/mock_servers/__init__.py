"""Mock Tankerkoenig API server for testing."""

from .app import create_mock_app, generate_prices, generate_stations

__all__ = ["create_mock_app", "generate_prices", "generate_stations"]
