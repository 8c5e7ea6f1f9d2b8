from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.loadplugin.schemas.common import HealthResponse, utc_now
from src.loadplugin.state import get_state

router = APIRouter(tags=["Health"])


class PluginDiagnosticsResponse(BaseModel):
    """Diagnostics describing the plugin's init outcome and tick settings."""

    initialized: bool = Field(..., description="Whether init() has run.")
    core_count: int = Field(..., ge=1, description="Logical CPU count used for normalization.")
    config_source: str = Field(..., description="Which source provided the threshold document.")
    config_path: Optional[str] = Field(default=None, description="Thresholds file path when one was read.")
    config_loaded: bool = Field(..., description="Whether a threshold document was accepted.")
    config_error: Optional[str] = Field(default=None, description="Most recent threshold load failure.")
    metric_families: List[str] = Field(default_factory=list, description="Registered gauge families.")
    metrics_path: str = Field(..., description="Path the exposition endpoint is mounted on.")
    tick_interval_sec: int = Field(..., description="Seconds between ticks.")
    tick_iterations: int = Field(..., description="Ticks to run (0 means unbounded).")
    timestamp: str = Field(..., description="UTC timestamp when the diagnostics were produced (ISO string).")


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic service liveness check.",
    operation_id="health_check",
)
def health_check() -> HealthResponse:
    """Return service liveness status."""
    return HealthResponse(status="ok", message="Healthy", timestamp=utc_now())


@router.get(
    "/api/health/plugin",
    response_model=PluginDiagnosticsResponse,
    summary="Plugin diagnostics",
    description="Reports core count, threshold config resolution and registered metric families.",
    operation_id="plugin_diagnostics",
)
def plugin_diagnostics(request: Request) -> PluginDiagnosticsResponse:
    """Return plugin init/config diagnostics."""
    state = get_state(request.app)
    plugin = state.plugin
    store = plugin.state.config_store
    cfg = state.settings
    return PluginDiagnosticsResponse(
        initialized=plugin.state.initialized,
        core_count=plugin.state.core_count,
        config_source=cfg.config_source,
        config_path=cfg.config_path,
        config_loaded=store.is_loaded,
        config_error=store.last_error,
        metric_families=plugin.sink.families(),
        metrics_path=cfg.metrics_path,
        tick_interval_sec=cfg.tick_interval_sec,
        tick_iterations=cfg.tick_iterations,
        timestamp=utc_now().isoformat(),
    )
