from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from src.loadplugin.schemas.common import AlertLevel


class LoadStats(BaseModel):
    """Miscellaneous scheduler statistics collected alongside the load average."""

    procs_total: int = Field(0, ge=0, description="Number of processes on the host.")
    procs_running: int = Field(0, ge=0, description="Processes currently running on a CPU.")
    procs_blocked: int = Field(0, ge=0, description="Processes blocked in uninterruptible (disk) sleep.")
    ctx_switches: int = Field(0, ge=0, description="Context switches since boot.")


class RawLoadSample(BaseModel):
    """Raw OS load average figures as returned by the sampling facility."""

    load1: float = Field(0.0, ge=0, description="1-minute load average.")
    load5: float = Field(0.0, ge=0, description="5-minute load average.")
    load15: float = Field(0.0, ge=0, description="15-minute load average.")
    stats: Optional[LoadStats] = Field(default=None, description="Optional misc load statistics.")


# Metric names carried by every snapshot, in serialization order.
SNAPSHOT_METRICS = (
    "load1m",
    "load5m",
    "load15m",
    "use",
    "load",
    "latency",
    "throughput",
    "throughputmax",
    "saturation",
    "errors",
)


class MetricsSnapshot(BaseModel):
    """Normalized load metrics for one tick, expressed as percent of total core capacity."""

    load1m: float = Field(..., description="1-minute load as percent of capacity.")
    load5m: float = Field(..., description="5-minute load as percent of capacity.")
    load15m: float = Field(..., description="15-minute load as percent of capacity.")
    use: float = Field(..., description="Utilization (USE) axis; mirrors load1m.")
    load: float = Field(..., description="Value alert rules are evaluated against; mirrors load1m.")
    latency: float = Field(0.0, description="Load has no latency analogue; always 0.")
    throughput: float = Field(..., description="Throughput axis; mirrors load1m.")
    throughputmax: float = Field(100.0, description="Throughput ceiling in percent.")
    saturation: float = Field(..., description="Saturation (USE) axis; mirrors load1m.")
    errors: float = Field(0.0, description="Errors (USE) axis; not applicable to load, always 0.")

    degraded: bool = Field(False, description="True when derived from a zero fallback after a sampling failure.")

    def as_mapping(self) -> Dict[str, float]:
        """Flat metric-name -> value mapping (excludes the degraded marker)."""
        return {name: float(getattr(self, name)) for name in SNAPSHOT_METRICS}


class AlertVerdictOut(BaseModel):
    """Serialized alert verdict."""

    message: str = Field(..., description="Human-readable alert message (empty when no alert).")
    level: AlertLevel = Field(..., description="Alert level.")
    flag: bool = Field(..., description="Whether an alert was raised.")
    cause: Optional[str] = Field(default=None, description="Alert cause, if any.")


class LatestMeasurementResponse(BaseModel):
    """Last snapshot produced by measure, with the verdict produced for it."""

    snapshot: MetricsSnapshot = Field(..., description="Most recent metrics snapshot.")
    timestamp: float = Field(..., description="Unix timestamp (seconds) of the measurement.")
    sample_error: Optional[str] = Field(default=None, description="Sampling failure text when the snapshot is degraded.")
    verdict: Optional[AlertVerdictOut] = Field(default=None, description="Verdict for the snapshot, once alert ran.")
