from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import FastAPI

from src.loadplugin.schemas.metrics import MetricsSnapshot, RawLoadSample
from src.loadplugin.services.alert_evaluator import AlertVerdict
from src.loadplugin.services.config_store import ConfigStore

if TYPE_CHECKING:
    from src.loadplugin.config import PluginSettings
    from src.loadplugin.plugin import LoadPlugin


@dataclass
class PluginState:
    """
    Process-wide plugin state.

    config_store and core_count are set by init and not changed afterwards.
    The last snapshot/verdict are written by the tick loop and may be read
    concurrently by HTTP handlers, so access goes through the lock.
    """

    config_store: ConfigStore = field(default_factory=ConfigStore)
    core_count: int = 1
    initialized: bool = False

    _snapshot: Optional[MetricsSnapshot] = None
    _raw_sample: Optional[RawLoadSample] = None
    _sample_error: Optional[str] = None
    _timestamp: Optional[float] = None
    _verdict: Optional[AlertVerdict] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_measure(
        self,
        snapshot: MetricsSnapshot,
        raw_sample: RawLoadSample,
        sample_error: Optional[str],
        timestamp: float,
    ) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._raw_sample = raw_sample
            self._sample_error = sample_error
            self._timestamp = timestamp
            # A verdict belongs to the snapshot it was computed for.
            self._verdict = None

    def record_verdict(self, verdict: AlertVerdict) -> None:
        with self._lock:
            self._verdict = verdict

    def latest(self) -> Dict[str, Any]:
        """Consistent copy of the last measurement and verdict."""
        with self._lock:
            return {
                "snapshot": self._snapshot,
                "raw_sample": self._raw_sample,
                "sample_error": self._sample_error,
                "timestamp": self._timestamp,
                "verdict": self._verdict,
            }

    def describe(self) -> Dict[str, Any]:
        """Loggable summary of the whole plugin state."""
        latest = self.latest()
        snapshot = latest["snapshot"]
        verdict = latest["verdict"]
        return {
            "initialized": self.initialized,
            "core_count": self.core_count,
            "config": self.config_store.config.model_dump(),
            "snapshot": snapshot.model_dump() if snapshot is not None else None,
            "sample_error": latest["sample_error"],
            "verdict": verdict.as_tuple()[:3] if verdict is not None else None,
        }


@dataclass
class AppState:
    """Typed app.state container for the host application."""

    settings: "PluginSettings"
    plugin: "LoadPlugin"
    tick_task: Optional[object] = None  # asyncio.Task, but kept loose to avoid import cycles


# PUBLIC_INTERFACE
def init_state(app: FastAPI, settings: "PluginSettings", plugin: "LoadPlugin") -> None:
    """Attach settings and the plugin instance to app.state."""
    app.state.state = AppState(settings=settings, plugin=plugin)


# PUBLIC_INTERFACE
def get_state(app: FastAPI) -> AppState:
    """Fetch typed AppState from a FastAPI app."""
    return app.state.state  # type: ignore[attr-defined]
