"""
Controllers package.

Contains:
- NeuralController: layered node graph built from connection rules
- ReflexController: independent delayed sensor to actuator reflexes
- Building blocks: activation functions, correlation and connection resolvers
"""

from .activation import Activation, get_activation_function
from .connection import ConnectionKind, ConnectionResolver, ConnectionRule, SynergyPolicy
from .controller import NeuralController, ReflexController, create_controller
from .correlation import CorrelationResolver, ParameterMode, Role, VirtualMuscleContribution
from .graph import NodeGraph, pattern_output
from .nodes import Input, Node, NodeHandle, NodeKind
from .reflex import ConditionalGate, DofReflex, MuscleReflex, Reflex, create_reflex, get_par_name

__all__ = [
    "Activation",
    "get_activation_function",
    "ConnectionKind",
    "ConnectionResolver",
    "ConnectionRule",
    "SynergyPolicy",
    "NeuralController",
    "ReflexController",
    "create_controller",
    "CorrelationResolver",
    "ParameterMode",
    "Role",
    "VirtualMuscleContribution",
    "NodeGraph",
    "pattern_output",
    "Input",
    "Node",
    "NodeHandle",
    "NodeKind",
    "ConditionalGate",
    "DofReflex",
    "MuscleReflex",
    "Reflex",
    "create_reflex",
    "get_par_name",
]
