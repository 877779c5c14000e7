"""
Reflexes: direct delayed sensor to actuator mappings.

Each reflex reads delayed sensors, combines them linearly, clamps the result
and adds it to its target actuator. An optional conditional gate suppresses
the reflex while a dof is out of its range and already moving on its own.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Optional

from ..core.base import SimulationModel
from ..core.config import REFLEX_GAIN_KEYS, ConditionConfig, ConfigurationError, ReflexConfig
from ..core.constants import (
    SENSOR_TYPE_DOF_POSITION,
    SENSOR_TYPE_DOF_VELOCITY,
    SENSOR_TYPE_FORCE,
    SENSOR_TYPE_LENGTH,
    SENSOR_TYPE_VELOCITY,
)
from ..core.types import Range, SensorRef, Side, get_sided_name
from ..params import ParameterBinding


def get_par_name(target: str, source: Optional[str] = None) -> str:
    """Parameter prefix of a reflex: ``target`` or ``target-source``."""
    if source is None or source == target:
        return target
    return f"{target}-{source}"


def _signbit(value: float) -> bool:
    return math.copysign(1.0, value) < 0


class ConditionalGate:
    """
    Range condition on a dof, with ``pos_range`` in degrees.

    When the delayed dof position is outside the range and the sign of the
    range violation equals the sign of the delayed dof velocity, the gated
    reflex is suppressed for that step.
    """

    def __init__(self, dof: str, pos_range: Range, delay: float):
        self.dof = dof
        self.pos_range = pos_range
        self.delay = delay
        self._position = SensorRef(SENSOR_TYPE_DOF_POSITION, dof)
        self._velocity = SensorRef(SENSOR_TYPE_DOF_VELOCITY, dof)

    def suppresses(self, model: SimulationModel) -> bool:
        position = math.degrees(model.get_delayed_value(self._position, self.delay))
        if self.pos_range.contains(position):
            return False
        violation = self.pos_range.violation(position)
        velocity = model.get_delayed_value(self._velocity, self.delay)
        return _signbit(violation) == _signbit(velocity)


class Reflex(ABC):
    def __init__(
        self,
        target: str,
        delay: float,
        control_range: Range = Range(),
        condition: Optional[ConditionalGate] = None,
    ):
        self.target = target
        self.delay = delay
        self.control_range = control_range
        self.condition = condition
        self.output = 0.0

    def compute_controls(self, model: SimulationModel, timestamp: float) -> float:
        """Add this step's command to the target actuator and return it."""
        if self.condition is not None and self.condition.suppresses(model):
            self.output = 0.0
            return self.output
        self.output = self.control_range.clamp(self.raw_control(model))
        model.add_actuator_input(self.target, self.output)
        return self.output

    @abstractmethod
    def raw_control(self, model: SimulationModel) -> float:
        pass


class MuscleReflex(Reflex):
    """``u = C0 + KL * (L - L0) + KV * V + KF * F`` of the source muscle."""

    def __init__(self, target: str, source: str, delay: float, KL=0.0, L0=1.0, KV=0.0, KF=0.0, C0=0.0, **kwargs):
        super().__init__(target, delay, **kwargs)
        self.source = source
        self.KL, self.L0, self.KV, self.KF, self.C0 = KL, L0, KV, KF, C0
        self._length = SensorRef(SENSOR_TYPE_LENGTH, source)
        self._velocity = SensorRef(SENSOR_TYPE_VELOCITY, source)
        self._force = SensorRef(SENSOR_TYPE_FORCE, source)

    def raw_control(self, model: SimulationModel) -> float:
        u = self.C0
        if self.KL:
            u += self.KL * (model.get_delayed_value(self._length, self.delay) - self.L0)
        if self.KV:
            u += self.KV * model.get_delayed_value(self._velocity, self.delay)
        if self.KF:
            u += self.KF * model.get_delayed_value(self._force, self.delay)
        return u


class DofReflex(Reflex):
    """``u = C0 + KP * (P0 - pos) + KV * (V0 - vel)`` of the source dof."""

    def __init__(self, target: str, source: str, delay: float, KP=0.0, P0=0.0, KV=0.0, V0=0.0, C0=0.0, **kwargs):
        super().__init__(target, delay, **kwargs)
        self.source = source
        self.KP, self.P0, self.KV, self.V0, self.C0 = KP, P0, KV, V0, C0
        self._position = SensorRef(SENSOR_TYPE_DOF_POSITION, source)
        self._velocity = SensorRef(SENSOR_TYPE_DOF_VELOCITY, source)

    def raw_control(self, model: SimulationModel) -> float:
        u = self.C0
        if self.KP:
            u += self.KP * (self.P0 - model.get_delayed_value(self._position, self.delay))
        if self.KV:
            u += self.KV * (self.V0 - model.get_delayed_value(self._velocity, self.delay))
        return u


REFLEX_TYPES = MappingProxyType({
    "MuscleReflex": MuscleReflex,
    "DofReflex": DofReflex,
})

# defaults of parameters that are not declared
_GAIN_DEFAULTS = MappingProxyType({"L0": 1.0})


def _resolve_name(name: str, side: Side, existing, what: str) -> str:
    resolved = get_sided_name(name, side) if side is not Side.NONE else name
    if resolved not in existing:
        raise ConfigurationError(f"Unknown {what}: {resolved}")
    return resolved


def create_reflex(config: ReflexConfig, params: ParameterBinding, model: SimulationModel, side: Side = Side.NONE) -> Reflex:
    """
    Instantiate one reflex for ``side``.

    Parameter names are built from the configured (side-less) names, so the
    left and right instances of a symmetric reflex share their parameters.
    """
    if config.type not in REFLEX_TYPES:
        raise ConfigurationError(f"Unknown reflex type: {config.type}")
    actuators, dofs = model.actuator_names(), model.dof_names()
    target = _resolve_name(config.target, side, actuators, "reflex target")
    if config.type == "MuscleReflex":
        source = _resolve_name(config.source or config.target, side, actuators, "reflex source muscle")
    elif config.source is None:
        raise ConfigurationError(f"DofReflex on {config.target} requires a source dof")
    else:
        source = _resolve_name(config.source, side, dofs, "reflex source dof")

    par_name = get_par_name(config.target, config.source or config.target)
    unknown = set(config.gains) - set(REFLEX_GAIN_KEYS[config.type])
    if unknown:
        raise ConfigurationError(f"Reflex {par_name}: unknown gains {sorted(unknown)}")
    if config.delay is None:
        raise ConfigurationError(f"Reflex {par_name} requires a delay")
    delay = params.get_or_create(f"{par_name}.delay", {"delay": config.delay}, "delay")
    gains = {
        key: params.get_or_create(f"{par_name}.{key}", config.gains, key, _GAIN_DEFAULTS.get(key, 0.0))
        for key in config.gains
    }

    condition = None
    if config.condition is not None:
        condition = _create_condition(config.condition, side, dofs, delay)

    return REFLEX_TYPES[config.type](
        target,
        source,
        delay,
        control_range=Range(config.min_control_value, config.max_control_value),
        condition=condition,
        **gains,
    )


def _create_condition(config: ConditionConfig, side: Side, dofs, delay: float) -> ConditionalGate:
    dof = _resolve_name(config.dof, side, dofs, "condition dof")
    return ConditionalGate(dof, config.pos_range, delay)
