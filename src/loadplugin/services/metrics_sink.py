from __future__ import annotations

import logging
from typing import List, Optional

from prometheus_client import CollectorRegistry, Gauge

from src.loadplugin.schemas.metrics import MetricsSnapshot

logger = logging.getLogger(__name__)

LOAD_METRICS_FAMILY = "sreagent_load_metrics"
LOAD_AVERAGE_FAMILY = "sreagent_load_average"

# Label value of the "use" label -> snapshot field it is read from.
USE_LABELS = (
    ("load1m", "load1m"),
    ("load5m", "load5m"),
    ("load15m", "load15m"),
    ("utilization", "use"),
    ("saturation", "saturation"),
    ("throughput", "throughput"),
    ("errors", "errors"),
)


class MetricsSink:
    """
    Gauge families exposed to the scrape endpoint.

    Each sink owns its CollectorRegistry, so building several plugins in one
    process (tests, embedded hosts) never collides on metric names. Gauge
    updates are safe against concurrent scrapes.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._load_metrics: Optional[Gauge] = None
        self._load_average: Optional[Gauge] = None

    @property
    def registered(self) -> bool:
        return self._load_metrics is not None

    def families(self) -> List[str]:
        if not self.registered:
            return []
        return [LOAD_METRICS_FAMILY, LOAD_AVERAGE_FAMILY]

    # PUBLIC_INTERFACE
    def register(self) -> None:
        """Register the gauge families once; later calls are no-ops."""
        if self.registered:
            return
        self._load_metrics = Gauge(
            LOAD_METRICS_FAMILY,
            "OS Load Utilization Saturation Errors Throughput Latency",
            ["use"],
            registry=self.registry,
        )
        # Declared for exposition but not populated.
        self._load_average = Gauge(
            LOAD_AVERAGE_FAMILY,
            "Host OS Load Average",
            ["load"],
            registry=self.registry,
        )
        logger.info("Registered metric families %s", self.families())

    # PUBLIC_INTERFACE
    def publish(self, snapshot: MetricsSnapshot) -> None:
        """Push the snapshot's load and USE values as gauge observations."""
        if self._load_metrics is None:
            raise RuntimeError("metric families are not registered")
        for label, field in USE_LABELS:
            self._load_metrics.labels(use=label).set(float(getattr(snapshot, field)))

    def value(self, label: str) -> Optional[float]:
        """Read back a published sreagent_load_metrics value (None if never set)."""
        return self.registry.get_sample_value(LOAD_METRICS_FAMILY, {"use": label})
