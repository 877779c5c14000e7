"""
Core type definitions shared by controllers, plants and objectives.

Names of sided body parts follow the ``<name>_l`` / ``<name>_r`` convention.
"""

from __future__ import annotations

import fnmatch
import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .constants import (
    DOF_SENSOR_TYPES,
    LEFT_SUFFIX,
    MUSCLE_SENSOR_TYPES,
    RIGHT_SUFFIX,
)


class Side(Enum):
    """Body side of an actuator, dof or node."""

    NONE = "none"
    LEFT = "left"
    RIGHT = "right"

    @property
    def suffix(self) -> str:
        return {Side.NONE: "", Side.LEFT: LEFT_SUFFIX, Side.RIGHT: RIGHT_SUFFIX}[self]

    @property
    def mirrored(self) -> "Side":
        return {Side.NONE: Side.NONE, Side.LEFT: Side.RIGHT, Side.RIGHT: Side.LEFT}[self]


def get_side(name: str) -> Side:
    if name.endswith(LEFT_SUFFIX):
        return Side.LEFT
    if name.endswith(RIGHT_SUFFIX):
        return Side.RIGHT
    return Side.NONE


def get_name_no_side(name: str) -> str:
    side = get_side(name)
    return name[: -len(side.suffix)] if side is not Side.NONE else name


def get_sided_name(name: str, side: Side) -> str:
    return get_name_no_side(name) + side.suffix


def pattern_match(name: str, pattern: str) -> bool:
    """Wildcard match; ``;`` separates alternative patterns."""
    return any(fnmatch.fnmatchcase(name, p.strip()) for p in pattern.split(";") if p.strip())


@dataclass(frozen=True)
class SensorRef:
    """Reference to a sensor channel of the simulation model."""

    sensor_type: str  # F, L, V for muscles; DP, DV for dofs
    target: str  # actuator or dof name

    @property
    def is_muscle_sensor(self) -> bool:
        return self.sensor_type in MUSCLE_SENSOR_TYPES

    @property
    def is_dof_sensor(self) -> bool:
        return self.sensor_type in DOF_SENSOR_TYPES

    def __str__(self) -> str:
        return f"{self.target}.{self.sensor_type}"


@dataclass(frozen=True)
class Range:
    """Closed interval [min, max]."""

    min: float = -math.inf
    max: float = math.inf

    @classmethod
    def from_value(cls, value) -> "Range":
        """Parse ``[min, max]``, ``{"min": .., "max": ..}`` or ``"min..max"``."""
        if isinstance(value, Range):
            return value
        if isinstance(value, dict):
            return cls(float(value.get("min", -math.inf)), float(value.get("max", math.inf)))
        if isinstance(value, str):
            lo, hi = value.split("..")
            return cls(float(lo), float(hi))
        lo, hi = value
        return cls(float(lo), float(hi))

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def violation(self, value: float) -> float:
        """Signed distance to the nearest bound: positive above, negative below."""
        if value < self.min:
            return value - self.min
        if value > self.max:
            return value - self.max
        return 0.0

    def clamp(self, value: float) -> float:
        return min(max(value, self.min), self.max)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.min, self.max)
