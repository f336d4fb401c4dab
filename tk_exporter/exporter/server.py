"""FastAPI application exposing the exporter's metrics."""

from typing import Optional

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Info, generate_latest

from tk_exporter import __version__
from tk_exporter.exporter.collector import TankerkoenigCollector


LANDING_PAGE = """<html>
<head><title>Tankerkoenig API Exporter</title></head>
<body>
<h1>Tankerkoenig API Exporter</h1>
<p><a href='{telemetry_path}'>Metrics</a></p>
</body>
</html>"""


def create_registry(collector: TankerkoenigCollector) -> CollectorRegistry:
    """
    Create a dedicated registry with the Tankerkoenig collector and build info.

    The default process and platform collectors are deliberately not part of it.
    """
    registry = CollectorRegistry()
    registry.register(collector)

    build_info = Info(
        "tk_exporter_build",
        "Build information of the Tankerkoenig exporter.",
        registry=registry,
    )
    build_info.info({"version": __version__})
    return registry


def create_app(
    registry: CollectorRegistry,
    telemetry_path: str = "/metrics",
    title: Optional[str] = None
) -> FastAPI:
    """
    Create the metrics web application.

    Args:
        registry: Registry rendered on the telemetry path
        telemetry_path: Path under which to expose metrics
        title: Optional application title

    Returns:
        FastAPI application
    """
    app = FastAPI(title=title or "Tankerkoenig API Exporter")

    # Plain def: FastAPI runs it in its thread pool, so concurrent scrapes
    # reach the collector from different threads and queue on its lock.
    @app.get(telemetry_path)
    def metrics() -> Response:
        """Render all metrics in the Prometheus text format."""
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", response_class=HTMLResponse)
    def landing_page() -> str:
        return LANDING_PAGE.format(telemetry_path=telemetry_path)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
