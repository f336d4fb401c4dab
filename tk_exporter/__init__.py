"""Prometheus exporter for fuel prices from the Tankerkoenig API."""

__version__ = "1.0.0"
