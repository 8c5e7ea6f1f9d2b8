from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from src.loadplugin.errors import AlertCause
from src.loadplugin.schemas.common import AlertLevel
from src.loadplugin.schemas.metrics import AlertVerdictOut, MetricsSnapshot
from src.loadplugin.services.config_store import ConfigStore

logger = logging.getLogger(__name__)

ALERT_GROUP = "alert"


@dataclass(frozen=True)
class AlertVerdict:
    """Outcome of one alert evaluation."""

    message: str
    level: AlertLevel
    flag: bool
    cause: Optional[AlertCause] = None

    def as_tuple(self) -> Tuple[str, str, bool, Optional[Exception]]:
        """(message, level, flag, cause) as handed back to the host."""
        return self.message, self.level.value, self.flag, self.cause

    def to_out(self) -> AlertVerdictOut:
        return AlertVerdictOut(
            message=self.message,
            level=self.level,
            flag=self.flag,
            cause=str(self.cause) if self.cause is not None else None,
        )


NO_ALERT = AlertVerdict(message="", level=AlertLevel.none, flag=False, cause=None)


@dataclass(frozen=True)
class ThresholdRule:
    """
    One entry of an ordered rule list.

    Every rule is first-match: the first rule whose predicate matches decides
    the verdict and no later rule is consulted. short_circuit only marks the
    rule that preempts lesser conditions (it is logged); it does not change
    how the list is walked.
    """

    name: str
    predicate: Callable[[float], bool]
    level: AlertLevel
    message: str
    cause: str
    short_circuit: bool = False

    def verdict(self) -> AlertVerdict:
        return AlertVerdict(message=self.message, level=self.level, flag=True, cause=AlertCause(self.cause))


# PUBLIC_INTERFACE
def build_threshold_rules(config: ConfigStore, metric: str = "load", group: str = ALERT_GROUP) -> List[ThresholdRule]:
    """
    Build the ordered low/engineered/design rules for a metric.

    Order matters: low is checked first, then engineered (severe overload,
    short-circuits), then design (moderate overload).
    """
    bounds = config.bounds(group, metric)
    low, design, engineered = bounds.low, bounds.design, bounds.engineered

    return [
        ThresholdRule(
            name=f"{metric}_low",
            predicate=lambda v: v < low,
            level=AlertLevel.warn,
            message=f"{metric} below low design point",
            cause=f"low {metric}",
        ),
        ThresholdRule(
            name=f"{metric}_engineered",
            predicate=lambda v: v > engineered,
            level=AlertLevel.fatal,
            message=f"{metric} above engineered point",
            cause=f"excessive {metric}",
            short_circuit=True,
        ),
        ThresholdRule(
            name=f"{metric}_design",
            predicate=lambda v: v > design,
            level=AlertLevel.warn,
            message=f"{metric} above design point",
            cause=f"moderately high {metric}",
        ),
    ]


# PUBLIC_INTERFACE
def evaluate_rules(value: float, rules: Sequence[ThresholdRule]) -> AlertVerdict:
    """Walk rules in order; the first match wins, no match means no alert."""
    for rule in rules:
        if not rule.predicate(value):
            continue
        if rule.short_circuit:
            logger.debug("Rule %s short-circuits evaluation value=%s", rule.name, value)
        return rule.verdict()
    return NO_ALERT


# PUBLIC_INTERFACE
def evaluate(snapshot: MetricsSnapshot, config: ConfigStore, metric: str = "load") -> AlertVerdict:
    """
    Evaluate a snapshot against the configured thresholds for one metric.

    Raises ThresholdNotConfiguredError when the metric's thresholds are missing
    and KeyError when the snapshot does not carry the metric.
    """
    value = snapshot.as_mapping()[metric]
    return evaluate_rules(value, build_threshold_rules(config, metric))
