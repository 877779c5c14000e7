"""
Anatomical correlation: decomposition of actuators into virtual muscles.

Parameters are shared between actuators that act on the body in the same way.
An actuator is broken down into named contributions (for example
``hip_flexion+knee_angle-`` for a biarticular muscle) whose names, rather than
the actuator's own name, are used to build parameter names.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

from ..core.base import SimulationModel
from ..core.config import ConfigurationError
from ..core.constants import MOMENT_ARM_THRESHOLD
from ..core.types import get_name_no_side


@dataclass(frozen=True)
class VirtualMuscleContribution:
    name: str
    correlation: float  # in [-1, 1]
    dofs: Tuple[str, ...] = ()


class ParameterMode(Enum):
    MUSCLE = "muscle"
    DOF = "dof"
    VIRTUAL = "virtual"
    VIRTUAL_DOF = "virtual_dof"

    @classmethod
    def from_name(cls, name: str) -> "ParameterMode":
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(f"Unknown parameter mode: {name}") from None


class Role(Enum):
    """Side of a connection an actuator is decomposed for."""

    TARGET = "target"
    SENSOR = "sensor"


def _sign(value: float) -> str:
    return "+" if value > 0 else "-"


class CorrelationResolver:
    """
    Decomposes actuators into virtual muscle contributions.

    One resolver belongs to one controller instance: the memo table is filled
    lazily and discarded with the controller.
    """

    def __init__(self, model: SimulationModel, mode: ParameterMode = ParameterMode.VIRTUAL):
        self.model = model
        self.mode = mode
        self._memo: Dict[Tuple[str, Role], Tuple[VirtualMuscleContribution, ...]] = {}

    def decompose(self, actuator: str, role: Role) -> Tuple[VirtualMuscleContribution, ...]:
        key = (actuator, role)
        if key not in self._memo:
            self._memo[key] = tuple(self._decompose(actuator, role))
        return self._memo[key]

    def _decompose(self, actuator: str, role: Role) -> List[VirtualMuscleContribution]:
        mode = self.mode
        if mode is ParameterMode.VIRTUAL_DOF:
            mode = ParameterMode.VIRTUAL if role is Role.TARGET else ParameterMode.DOF

        if mode is ParameterMode.MUSCLE:
            dofs = tuple(self.model.driven_dofs(actuator))
            return [VirtualMuscleContribution(get_name_no_side(actuator), 1.0, dofs)] if dofs else []
        if mode is ParameterMode.DOF:
            return self._dof_contributions(actuator)
        return self._virtual_contributions(actuator, list(self.model.joints(actuator)), 0, frozenset())

    def _moment_arms(self, actuator: str, dofs) -> List[Tuple[str, float]]:
        arms = [(dof, self.model.moment_arm(actuator, dof)) for dof in dofs]
        return [(dof, arm) for dof, arm in arms if abs(arm) > MOMENT_ARM_THRESHOLD]

    def _dof_contributions(self, actuator: str) -> List[VirtualMuscleContribution]:
        arms = self._moment_arms(actuator, self.model.driven_dofs(actuator))
        norm = math.sqrt(sum(arm * arm for _, arm in arms))
        return [
            VirtualMuscleContribution(get_name_no_side(dof) + _sign(arm), abs(arm) / norm, (dof,))
            for dof, arm in arms
        ]

    def _virtual_contributions(
        self, actuator: str, joints: List[str], idx: int, visited: FrozenSet[str]
    ) -> List[VirtualMuscleContribution]:
        # skip joints already on this path, and joints the actuator does not drive
        while idx < len(joints):
            arms = self._moment_arms(actuator, self.model.dofs(joints[idx]))
            if joints[idx] not in visited and arms:
                break
            idx += 1
        else:
            return []

        joint = joints[idx]
        norm = math.sqrt(sum(arm * arm for _, arm in arms))
        tails = self._virtual_contributions(actuator, joints, idx + 1, visited | {joint})

        results = []
        for dof, arm in arms:
            head = VirtualMuscleContribution(get_name_no_side(dof) + _sign(arm), abs(arm) / norm, (dof,))
            if not tails:
                results.append(head)
            for tail in tails:
                results.append(VirtualMuscleContribution(
                    head.name + tail.name,
                    head.correlation * tail.correlation,
                    head.dofs + tail.dofs,
                ))
        return results
