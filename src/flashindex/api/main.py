"""FastAPI backend serving indexer output to the dashboard."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from flashindex.api.schemas import EventsResponse, HealthResponse, MetricsResponse
from flashindex.api.views import metrics_snapshot, recent_events
from flashindex.config import get_settings
from flashindex.config.settings import Settings
from flashindex.ingestion.manager import Indexer

log = structlog.get_logger(__name__)

# Set by run_api() before uvicorn imports the app.
_config_profile: str | None = None
_config_dir: Path | None = None


def create_app(settings: Settings | None = None, indexer: Indexer | None = None) -> FastAPI:
    """Build the app. The indexer is activated on startup and closed on shutdown."""
    settings = settings or get_settings(_config_profile, _config_dir)
    indexer = indexer or Indexer.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await indexer.start()
        yield
        await indexer.close()

    app = FastAPI(title="flashindex API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.settings = settings
    app.state.indexer = indexer

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        idx: Indexer = request.app.state.indexer
        return HealthResponse(status="ok", indexer=idx.state.value, configured=idx.configured)

    @app.get("/events", response_model=EventsResponse)
    def events(
        request: Request,
        limit: int = Query(settings.default_limit, ge=1, le=1000),
    ) -> EventsResponse:
        """Most recent orders and settlements, newest first."""
        idx: Indexer = request.app.state.indexer
        return recent_events(idx.store, limit=limit, decimals=settings.native_decimals)

    @app.get("/metrics", response_model=MetricsResponse)
    def metrics(request: Request) -> MetricsResponse:
        """Orders-per-block series, totals and active ticks."""
        idx: Indexer = request.app.state.indexer
        return metrics_snapshot(
            idx.store,
            decimals=settings.native_decimals,
            series_window=settings.series_window,
            active_window=settings.active_window,
        )

    return app


def run_api(
    host: str | None = None,
    port: int | None = None,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    settings = get_settings(profile, config_dir)
    import uvicorn

    log.info("api_starting", host=host or settings.api_host, port=port or settings.api_port)
    uvicorn.run(
        "flashindex.api.main:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
    )
