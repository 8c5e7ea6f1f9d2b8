from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

# Bound names in ascending order; configs must keep them strictly increasing.
BOUND_NAMES = ("low", "design", "engineered")


class ThresholdBounds(BaseModel):
    """Ordered threshold points for a single metric."""

    model_config = ConfigDict(extra="forbid")

    low: float = Field(..., strict=True, description="Below this value the metric is under its low design point.")
    design: float = Field(..., strict=True, description="Above this value the metric exceeds its design point.")
    engineered: float = Field(..., strict=True, description="Above this value the metric exceeds its engineered limit.")

    @model_validator(mode="after")
    def _check_ordering(self) -> "ThresholdBounds":
        if not (self.low < self.design < self.engineered):
            raise ValueError(
                f"thresholds must satisfy low < design < engineered "
                f"(got low={self.low}, design={self.design}, engineered={self.engineered})"
            )
        return self


class PluginConfig(RootModel[Dict[str, Dict[str, ThresholdBounds]]]):
    """
    Threshold rules keyed by rule group, then metric name.

    Example document:
      {"alert": {"load": {"low": 2, "design": 60, "engineered": 80}}}
    """

    root: Dict[str, Dict[str, ThresholdBounds]] = Field(default_factory=dict)

    def groups(self) -> List[str]:
        return list(self.root.keys())

    def is_empty(self) -> bool:
        return not self.root


class ThresholdsResponse(BaseModel):
    """Active threshold configuration as served by the host."""

    config: Dict[str, Dict[str, ThresholdBounds]] = Field(..., description="Threshold rules by group and metric.")
    source: str = Field(..., description="Where the threshold document came from (file, env, default).")
    loaded: bool = Field(..., description="Whether any threshold document was accepted.")
    last_error: str | None = Field(default=None, description="Most recent config load failure, if any.")
