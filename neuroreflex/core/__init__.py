"""
Core package for shared functionality.

Contains:
- Configuration classes
- Base classes and interfaces
- Shared types (sides, sensor references, ranges)
- Common constants
"""

from .base import Controller, ControllerState, Measure, SimulationModel
from .config import (
    ConditionConfig,
    ConfigurationError,
    InputConfig,
    InterLayerConfig,
    MotorLayerConfig,
    NeuralControllerConfig,
    PatternLayerConfig,
    ReflexConfig,
    ReflexControllerConfig,
    SensorLayerConfig,
    controller_config_from_dict,
    load_controller_config,
)
from .types import Range, SensorRef, Side, get_name_no_side, get_side, get_sided_name
from . import constants

__all__ = [
    "Controller",
    "ControllerState",
    "Measure",
    "SimulationModel",
    "ConditionConfig",
    "ConfigurationError",
    "InputConfig",
    "InterLayerConfig",
    "MotorLayerConfig",
    "NeuralControllerConfig",
    "PatternLayerConfig",
    "ReflexConfig",
    "ReflexControllerConfig",
    "SensorLayerConfig",
    "controller_config_from_dict",
    "load_controller_config",
    "Range",
    "SensorRef",
    "Side",
    "get_name_no_side",
    "get_side",
    "get_sided_name",
    "constants",
]
