from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.loadplugin.config import PluginSettings, load_settings
from src.loadplugin.plugin import LoadPlugin
from src.loadplugin.routers import health, measurements
from src.loadplugin.services.tick_loop import tick_loop
from src.loadplugin.state import get_state, init_state

openapi_tags = [
    {"name": "Health", "description": "Service health and plugin diagnostics."},
    {"name": "Measurements", "description": "Last load snapshot, alert verdict and active thresholds."},
]

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def create_app(settings: PluginSettings, plugin: Optional[LoadPlugin] = None) -> FastAPI:
    """Build the host application: plugin lifecycle, tick loop, diagnostics and the scrape endpoint."""
    app = FastAPI(
        title="SREAgent Load Plugin",
        description=(
            "Host for the OS load measurement plugin. Runs the measure/alert tick loop, "
            "exposes USE metrics for scraping and serves the last snapshot and verdict."
        ),
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    init_state(app, settings, plugin if plugin is not None else LoadPlugin())

    @app.on_event("startup")
    async def _on_startup() -> None:
        """Startup hook: init the plugin and start the tick loop."""
        state = get_state(app)
        state.plugin.init(state.settings.config_text)

        if not state.settings.tick_loop_enabled:
            logger.info("Tick loop disabled (PLUGIN_TICK_LOOP_ENABLED=false)")
            return

        app.state._tick_shutdown = asyncio.Event()
        state.tick_task = asyncio.create_task(
            tick_loop(
                state.plugin,
                state.settings.tick_interval_sec,
                state.settings.tick_iterations,
                app.state._tick_shutdown,
            )
        )

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        """Shutdown hook: stop the tick loop."""
        state = get_state(app)

        tick_shutdown = getattr(app.state, "_tick_shutdown", None)
        if tick_shutdown is not None:
            tick_shutdown.set()
        tick_task = state.tick_task
        if tick_task is not None:
            try:
                await asyncio.wait_for(tick_task, timeout=5.0)
            except Exception:
                logger.exception("Error stopping tick loop task")

    async def _metrics(request: Request) -> Response:
        registry = get_state(request.app).plugin.sink.registry
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    app.add_api_route(settings.metrics_path, _metrics, methods=["GET"], include_in_schema=False)

    app.include_router(health.router)
    app.include_router(measurements.router)
    return app


app = create_app(load_settings())


# PUBLIC_INTERFACE
def run() -> None:
    """Console entry point: configure logging, resolve settings and serve the host app with uvicorn."""
    logging.basicConfig(
        level=os.getenv("PLUGIN_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Resolved here (not reusing the import-time app) so resolution is logged.
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.metrics_host, port=settings.metrics_port)


if __name__ == "__main__":
    run()
