from __future__ import annotations

from fastapi import FastAPI
from structlog import get_logger

from farmdoc import __version__
from farmdoc.api.routes.extract import router as extract_router
from farmdoc.api.routes.health import router as health_router
from farmdoc.core.logging import setup_structlog
from farmdoc.core.metrics import metrics_endpoint, metrics_middleware
from farmdoc.core.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    setup_structlog(settings.log_level)

    app = FastAPI(title="farmdoc-parser API", version=__version__)
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])  # Prometheus scrape
    app.middleware("http")(metrics_middleware)

    # Snapshot directory must exist before the first headered document
    @app.on_event("startup")
    def _on_startup() -> None:  # noqa: D401
        settings.ensure_data_dirs()
        get_logger(__name__).info("app_started", snapshot_dir=str(settings.snapshot_dir))

    app.include_router(health_router)
    app.include_router(extract_router)

    return app


app = create_app()
