from __future__ import annotations


class PluginError(Exception):
    """Base class for load plugin errors."""


class ThresholdNotConfiguredError(PluginError, LookupError):
    """Raised when a threshold lookup targets a group/metric/bound that is not configured."""

    def __init__(self, group: str, metric: str, bound: str):
        self.group = group
        self.metric = metric
        self.bound = bound
        super().__init__(f"threshold not configured: {group}.{metric}.{bound}")


class SamplingError(PluginError):
    """The OS load sampling facility failed."""


class PluginNotInitializedError(PluginError, RuntimeError):
    """measure/alert was called before init."""


class AlertCause(PluginError):
    """Cause attached to a raised alert verdict (e.g. 'low load')."""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AlertCause):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))
