from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional, Protocol, Tuple

from pydantic import ValidationError

from src.loadplugin.errors import AlertCause, PluginNotInitializedError
from src.loadplugin.schemas.common import AlertLevel
from src.loadplugin.schemas.metrics import MetricsSnapshot, RawLoadSample
from src.loadplugin.services.alert_evaluator import AlertVerdict, evaluate
from src.loadplugin.services.deriver import clamp_core_count, derive
from src.loadplugin.services.load_sampler import LoadSampler, PsutilLoadSampler, read_sample
from src.loadplugin.services.metrics_sink import MetricsSink
from src.loadplugin.state import PluginState

logger = logging.getLogger(__name__)

MeasureResult = Tuple[bytes, bytes, float]
AlertResult = Tuple[str, str, bool, Optional[Exception]]


class MeasurementPlugin(Protocol):
    """Lifecycle contract between a host scheduler and a measurement plugin."""

    def init(self, config_text: str) -> None:
        ...

    def measure(self) -> MeasureResult:
        ...

    def alert(self, measure: bytes) -> AlertResult:
        ...


def _raw_payload(raw: RawLoadSample, error: Optional[str]) -> bytes:
    payload = {
        "loadaverage": {"load1": raw.load1, "load5": raw.load5, "load15": raw.load15},
        "loadstats": raw.stats.model_dump() if raw.stats is not None else None,
        "error": error,
    }
    return json.dumps(payload, sort_keys=True).encode("utf-8")


class LoadPlugin:
    """
    OS load plugin: init once, then measure() and alert() once per tick.

    alert() evaluates the snapshot bytes it is given; the host is expected to
    pass the bytes returned by the measure() of the same tick.
    """

    def __init__(
        self,
        sampler: Optional[LoadSampler] = None,
        sink: Optional[MetricsSink] = None,
        state: Optional[PluginState] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.sampler: LoadSampler = sampler if sampler is not None else PsutilLoadSampler()
        self.sink = sink if sink is not None else MetricsSink()
        self.state = state if state is not None else PluginState()
        self._clock = clock

    def _require_init(self, op: str) -> None:
        if not self.state.initialized:
            raise PluginNotInitializedError(f"{op}() called before init()")

    # PUBLIC_INTERFACE
    def init(self, config_text: str) -> None:
        """
        Load thresholds, determine the core count and register gauge families.

        Safe to call again: gauges stay registered, the core count is kept,
        and a bad config leaves the previous thresholds in place.
        """
        self.state.config_store.load(config_text)

        if not self.state.initialized:
            reported = self.sampler.core_count()
            self.state.core_count = clamp_core_count(reported)
            if reported < 1:
                logger.warning("Sampler reported core_count=%s; using 1", reported)

        self.sink.register()
        self.state.initialized = True

        logger.info(
            "InitPlugin pluginconfig=%s core_count=%s config_error=%s",
            self.state.config_store.config.model_dump(),
            self.state.core_count,
            self.state.config_store.last_error,
        )

    # PUBLIC_INTERFACE
    def measure(self) -> MeasureResult:
        """Sample, derive, publish; return (snapshot_json, raw_json, unix_seconds)."""
        self._require_init("measure")

        raw, sample_error = read_sample(self.sampler)
        snapshot = derive(raw, self.state.core_count, degraded=sample_error is not None)
        timestamp = float(self._clock())

        self.state.record_measure(snapshot, raw, sample_error, timestamp)
        self.sink.publish(snapshot)

        if snapshot.degraded:
            logger.warning("Measurement degraded (zero sample used): %s", sample_error)

        return snapshot.model_dump_json().encode("utf-8"), _raw_payload(raw, sample_error), timestamp

    # PUBLIC_INTERFACE
    def alert(self, measure: bytes) -> AlertResult:
        """Evaluate a serialized snapshot; return (message, level, flag, cause)."""
        self._require_init("alert")

        try:
            snapshot = MetricsSnapshot.model_validate_json(measure or b"")
        except ValidationError as exc:
            logger.error("Alert input is not a metrics snapshot: %s", exc.errors()[:1])
            verdict = AlertVerdict(
                message="unknown measure",
                level=AlertLevel.none,
                flag=True,
                cause=AlertCause("undecodable measure"),
            )
        else:
            verdict = evaluate(snapshot, self.state.config_store)

        self.state.record_verdict(verdict)
        return verdict.as_tuple()
