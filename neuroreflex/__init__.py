"""
neuroreflex - reflex and layered neural controllers for musculoskeletal simulation.

A controller configuration declares sensor, pattern, inter and motor layers
with symbolic connection rules. Rules are resolved into a graph whose gains and
offsets are shared, optimizable parameters named after the anatomy they act
on, so that left and right (and anatomically equivalent) actuators share them.
"""

from .controllers import NeuralController, ReflexController, create_controller
from .core import (
    ConfigurationError,
    NeuralControllerConfig,
    ReflexControllerConfig,
    SimulationModel,
    load_controller_config,
)
from .params import ParameterBinding, ParamInfo

__version__ = "0.1.0"

__all__ = [
    "NeuralController",
    "ReflexController",
    "create_controller",
    "ConfigurationError",
    "NeuralControllerConfig",
    "ReflexControllerConfig",
    "SimulationModel",
    "load_controller_config",
    "ParameterBinding",
    "ParamInfo",
]
