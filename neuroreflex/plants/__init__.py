"""Plants module - simulation models consumed by the controllers."""

from .delay import DelayedSensorBuffer
from .mujoco import MuJoCoModel

__all__ = [
    "DelayedSensorBuffer",
    "MuJoCoModel",
]
