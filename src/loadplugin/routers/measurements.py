from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from src.loadplugin.schemas.common import ErrorResponse
from src.loadplugin.schemas.metrics import LatestMeasurementResponse
from src.loadplugin.schemas.thresholds import ThresholdsResponse
from src.loadplugin.state import get_state

router = APIRouter(prefix="/api", tags=["Measurements"])


@router.get(
    "/measurements/latest",
    response_model=LatestMeasurementResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Latest measurement",
    description="Last snapshot produced by measure() and the verdict alert() produced for it.",
    operation_id="get_latest_measurement",
)
def get_latest_measurement(request: Request) -> LatestMeasurementResponse:
    """Return the most recent snapshot and verdict."""
    latest = get_state(request.app).plugin.state.latest()
    if latest["snapshot"] is None:
        raise HTTPException(status_code=404, detail="no measurement taken yet")
    verdict = latest["verdict"]
    return LatestMeasurementResponse(
        snapshot=latest["snapshot"],
        timestamp=latest["timestamp"],
        sample_error=latest["sample_error"],
        verdict=verdict.to_out() if verdict is not None else None,
    )


@router.get(
    "/thresholds",
    response_model=ThresholdsResponse,
    summary="Active thresholds",
    description="Threshold rules currently used by alert evaluation.",
    operation_id="get_thresholds",
)
def get_thresholds(request: Request) -> ThresholdsResponse:
    """Return the active threshold configuration."""
    state = get_state(request.app)
    store = state.plugin.state.config_store
    return ThresholdsResponse(
        config=store.config.root,
        source=state.settings.config_source,
        loaded=store.is_loaded,
        last_error=store.last_error,
    )
