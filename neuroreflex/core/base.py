"""
Base classes and interfaces for extensibility.

``SimulationModel`` is the surface consumed from the physics engine and its
delayed sensor buffer. ``Controller`` is the surface exposed back to it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Sequence

from .constants import MOMENT_ARM_THRESHOLD
from .types import SensorRef, Side, get_side


class SimulationModel(ABC):
    """
    Abstract simulation model.

    Implementations expose the current time, delayed sensor values, an input
    sink per actuator, dof state, and the anatomical queries used to resolve
    connection rules. The anatomical relations have default implementations
    derived from moment arms; engines with better knowledge may override them.
    """

    @abstractmethod
    def get_time(self) -> float:
        pass

    @abstractmethod
    def get_delayed_value(self, sensor: SensorRef, delay: float) -> float:
        """Sensor value as it was ``delay`` seconds ago."""
        pass

    @abstractmethod
    def add_actuator_input(self, actuator: str, value: float) -> None:
        pass

    @abstractmethod
    def actuator_names(self) -> List[str]:
        pass

    @abstractmethod
    def dof_names(self) -> List[str]:
        pass

    @abstractmethod
    def dof_position(self, dof: str) -> float:
        """Current dof position in radians (or meters for slide dofs)."""
        pass

    @abstractmethod
    def dof_velocity(self, dof: str) -> float:
        pass

    # -------------------------------------------------------------------------
    # Anatomy
    # -------------------------------------------------------------------------

    @abstractmethod
    def joints(self, actuator: str) -> Sequence[str]:
        """Joints spanned by an actuator, ordered from origin to insertion."""
        pass

    @abstractmethod
    def dofs(self, joint: str) -> Sequence[str]:
        pass

    @abstractmethod
    def joint_of(self, dof: str) -> str:
        pass

    @abstractmethod
    def moment_arm(self, actuator: str, dof: str) -> float:
        pass

    def side(self, name: str) -> Side:
        return get_side(name)

    def driven_dofs(self, actuator: str) -> List[str]:
        return [
            dof
            for joint in self.joints(actuator)
            for dof in self.dofs(joint)
            if abs(self.moment_arm(actuator, dof)) > MOMENT_ARM_THRESHOLD
        ]

    def shares_joint(self, a: str, b: str) -> bool:
        return bool(set(self.joints(a)) & set(self.joints(b)))

    def is_agonist(self, a: str, b: str) -> bool:
        return any(
            self.moment_arm(a, dof) * self.moment_arm(b, dof) > 0
            for dof in self.driven_dofs(a)
        )

    def is_antagonist(self, a: str, b: str) -> bool:
        return any(
            self.moment_arm(a, dof) * self.moment_arm(b, dof) < 0
            for dof in self.driven_dofs(a)
        )


class ControllerState(Enum):
    CONSTRUCTED = "constructed"
    EVALUATING = "evaluating"
    FINALIZED = "finalized"


class Controller(ABC):
    """
    Abstract base class for all controllers.

    Controllers are constructed once per model instance and invoked once per
    control step by the simulation loop.
    """

    def __init__(self):
        self.state = ControllerState.CONSTRUCTED
        self.termination_request = False

    def update_controls(self, model: SimulationModel, timestamp: float) -> None:
        """Compute this step's actuation and add it to the model's actuators."""
        if self.state is ControllerState.FINALIZED:
            raise RuntimeError("Controller has been finalized")
        self.state = ControllerState.EVALUATING
        self.compute_controls(model, timestamp)

    def request_termination(self, value: bool = True) -> None:
        self.termination_request = value

    def finalize(self) -> None:
        self.state = ControllerState.FINALIZED

    @abstractmethod
    def compute_controls(self, model: SimulationModel, timestamp: float) -> None:
        pass

    @abstractmethod
    def get_signature(self) -> str:
        """Short human-readable description used for result bookkeeping."""
        pass


class Measure(ABC):
    """
    Abstract fitness measure, updated once per simulation step.

    Lower results are better.
    """

    def __init__(self):
        self.termination_request = False

    @abstractmethod
    def update(self, model: SimulationModel, timestamp: float) -> None:
        pass

    @abstractmethod
    def result(self, model: SimulationModel) -> float:
        pass

    def get_signature(self) -> str:
        return ""
