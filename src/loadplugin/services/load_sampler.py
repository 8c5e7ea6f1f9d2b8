from __future__ import annotations

import logging
from typing import Optional, Protocol

import psutil

from src.loadplugin.errors import SamplingError
from src.loadplugin.schemas.metrics import LoadStats, RawLoadSample

logger = logging.getLogger(__name__)


class LoadSampler(Protocol):
    """OS sampling facility the plugin reads load figures from."""

    def sample(self) -> RawLoadSample:
        """Return the current load average; raise SamplingError on failure."""
        ...

    def core_count(self) -> int:
        """Return the number of logical CPUs (may be < 1 when unknown)."""
        ...


class PsutilLoadSampler:
    """LoadSampler backed by psutil."""

    def __init__(self, collect_stats: bool = True):
        self._collect_stats = collect_stats

    def sample(self) -> RawLoadSample:
        try:
            load1, load5, load15 = psutil.getloadavg()
        except (OSError, psutil.Error) as exc:
            raise SamplingError(f"load average unavailable: {exc}") from exc

        return RawLoadSample(
            load1=float(load1),
            load5=float(load5),
            load15=float(load15),
            stats=self._load_stats() if self._collect_stats else None,
        )

    def _load_stats(self) -> Optional[LoadStats]:
        # Stats are supplementary; a failure here must not fail the sample.
        try:
            running = blocked = total = 0
            for proc in psutil.process_iter(["status"]):
                total += 1
                status = proc.info.get("status")
                if status == psutil.STATUS_RUNNING:
                    running += 1
                elif status == psutil.STATUS_DISK_SLEEP:
                    blocked += 1
            return LoadStats(
                procs_total=total,
                procs_running=running,
                procs_blocked=blocked,
                ctx_switches=int(psutil.cpu_stats().ctx_switches),
            )
        except (OSError, psutil.Error):
            logger.exception("Collecting load stats failed")
            return None

    def core_count(self) -> int:
        try:
            return int(psutil.cpu_count(logical=True) or 0)
        except (OSError, psutil.Error):
            logger.exception("Determining CPU count failed")
            return 0


# PUBLIC_INTERFACE
def read_sample(sampler: LoadSampler) -> tuple[RawLoadSample, Optional[str]]:
    """
    Read one sample, falling back to a zero-valued sample on failure.

    Returns (sample, error) where error is the failure text when the fallback was used.
    """
    try:
        return sampler.sample(), None
    except SamplingError as exc:
        logger.warning("Load sampling failed, using zero sample: %s", exc)
        return RawLoadSample(), str(exc)
    except Exception as exc:
        logger.exception("Load sampler unexpected error, using zero sample")
        return RawLoadSample(), f"unexpected sampler error: {exc}"
