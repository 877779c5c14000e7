"""
Fitness measures evaluated alongside a simulation.

DofLimitMeasure penalizes dofs that leave a position (and optionally a
velocity) range, averaged over all simulation steps.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.base import Measure, SimulationModel
from ..core.config import ConfigurationError, _build
from ..core.types import Range


@dataclass
class DofLimitConfig:
    """Penalty on one dof; ranges are in degrees and degrees per second."""

    dof: str
    range: Optional[Range] = None
    velocity_range: Optional[Range] = None
    squared_range_penalty: float = 0.0
    abs_range_penalty: float = 0.0
    squared_velocity_range_penalty: float = 0.0
    abs_velocity_range_penalty: float = 0.0

    def __post_init__(self):
        if self.range is not None:
            self.range = Range.from_value(self.range)
        if self.velocity_range is not None:
            self.velocity_range = Range.from_value(self.velocity_range)

    @classmethod
    def from_dict(cls, data: dict) -> "DofLimitConfig":
        return _build(cls, data, f"dof limit {data.get('dof', '?')}")


@dataclass
class DofLimitMeasureConfig:
    limits: List[DofLimitConfig] = field(default_factory=list)
    name: str = "DofLimit"

    @classmethod
    def from_dict(cls, data: dict) -> "DofLimitMeasureConfig":
        data = {k: v for k, v in data.items() if k != "type"}
        data["limits"] = [DofLimitConfig.from_dict(d) for d in data.get("limits", [])]
        return _build(cls, data, "DofLimitMeasure")

    @classmethod
    def load(cls, path: str) -> "DofLimitMeasureConfig":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))


class _Limit:
    def __init__(self, config: DofLimitConfig):
        self.config = config
        self.total = 0.0
        self.count = 0

    def penalty(self, position: float, velocity: float) -> float:
        c = self.config
        value = 0.0
        if c.range is not None:
            v = c.range.violation(math.degrees(position))
            value += c.squared_range_penalty * v * v + c.abs_range_penalty * abs(v)
        if c.velocity_range is not None:
            v = c.velocity_range.violation(math.degrees(velocity))
            value += c.squared_velocity_range_penalty * v * v + c.abs_velocity_range_penalty * abs(v)
        return value

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class DofLimitMeasure(Measure):
    """Sum over limits of the mean per-step penalty."""

    def __init__(self, config: DofLimitMeasureConfig, model: SimulationModel):
        super().__init__()
        self.config = config
        dofs = set(model.dof_names())
        for limit in config.limits:
            if limit.dof not in dofs:
                raise ConfigurationError(f"Unknown dof in limit measure: {limit.dof}")
        self.limits = [_Limit(limit) for limit in config.limits]

    def update(self, model: SimulationModel, timestamp: float) -> None:
        for limit in self.limits:
            dof = limit.config.dof
            limit.total += limit.penalty(model.dof_position(dof), model.dof_velocity(dof))
            limit.count += 1

    def result(self, model: SimulationModel) -> float:
        return sum(limit.mean for limit in self.limits)

    def report(self) -> Dict[str, float]:
        return {limit.config.dof: limit.mean for limit in self.limits}

    def get_signature(self) -> str:
        return self.config.name
