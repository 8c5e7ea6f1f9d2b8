from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from src.loadplugin.errors import ThresholdNotConfiguredError
from src.loadplugin.schemas.thresholds import BOUND_NAMES, PluginConfig, ThresholdBounds

logger = logging.getLogger(__name__)


class ConfigStore:
    """
    Holds the threshold rules handed to the plugin at init.

    A failed load never raises: the diagnostic is logged and the store keeps
    whatever it held before (an empty config on the first load). Lookups of
    unconfigured thresholds raise ThresholdNotConfiguredError.
    """

    def __init__(self) -> None:
        self._config = PluginConfig()
        self._loaded = False
        self.last_error: Optional[str] = None

    @property
    def config(self) -> PluginConfig:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    # PUBLIC_INTERFACE
    def load(self, raw_config_text: str) -> PluginConfig:
        """Parse and validate a threshold document; return the config now in effect."""
        try:
            parsed = PluginConfig.model_validate_json(raw_config_text or "")
        except ValidationError as exc:
            self.last_error = _summarize(exc)
            logger.error("failed to load threshold config: %s config=%r", self.last_error, raw_config_text)
            return self._config

        self._config = parsed
        self._loaded = True
        self.last_error = None
        logger.info("Loaded threshold config groups=%s", parsed.groups())
        return self._config

    def bounds(self, group: str, metric: str) -> ThresholdBounds:
        """All three bounds of a metric; raises ThresholdNotConfiguredError when the metric is absent."""
        metrics = self._config.root.get(group)
        if metrics is None or metric not in metrics:
            raise ThresholdNotConfiguredError(group, metric, "*")
        return metrics[metric]

    # PUBLIC_INTERFACE
    def lookup(self, group: str, metric: str, bound: str) -> float:
        """Return a single threshold value, e.g. lookup('alert', 'load', 'design')."""
        metrics = self._config.root.get(group) or {}
        bounds = metrics.get(metric)
        if bounds is None or bound not in BOUND_NAMES:
            raise ThresholdNotConfiguredError(group, metric, bound)
        return float(getattr(bounds, bound))


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or str(exc)
