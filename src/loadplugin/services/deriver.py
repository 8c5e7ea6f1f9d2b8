from __future__ import annotations

from src.loadplugin.schemas.metrics import MetricsSnapshot, RawLoadSample


def _percent_of_capacity(raw_load: float, cores: int) -> float:
    return 100.0 * float(raw_load) / float(cores)


# PUBLIC_INTERFACE
def clamp_core_count(core_count: int) -> int:
    """Core counts below 1 (unknown/misreported) are treated as a single core."""
    return max(1, int(core_count or 0))


# PUBLIC_INTERFACE
def derive(raw_sample: RawLoadSample, core_count: int, degraded: bool = False) -> MetricsSnapshot:
    """
    Convert a raw load sample into a normalized snapshot.

    Each load window becomes a percentage of total core capacity. The 1-minute
    figure is then mapped onto the USE axes:
      U: utilization = load1m
      S: saturation = load1m
      E: errors = 0 (not applicable to load)
    plus throughput = load1m against a ceiling of 100, and latency = 0.
    """
    cores = clamp_core_count(core_count)
    load1m = _percent_of_capacity(raw_sample.load1, cores)
    load5m = _percent_of_capacity(raw_sample.load5, cores)
    load15m = _percent_of_capacity(raw_sample.load15, cores)

    return MetricsSnapshot(
        load1m=load1m,
        load5m=load5m,
        load15m=load15m,
        use=load1m,
        load=load1m,
        latency=0.0,
        throughput=load1m,
        throughputmax=100.0,
        saturation=load1m,
        errors=0.0,
        degraded=degraded,
    )
