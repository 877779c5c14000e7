"""Activation functions for controller nodes."""

from __future__ import annotations

import math
from enum import Enum
from types import MappingProxyType
from typing import Callable

from ..core.config import ConfigurationError

ActivationFn = Callable[[float], float]


def _linear(x: float) -> float:
    return x


def _rectifier(x: float) -> float:
    return x if x > 0.0 else 0.0


def _sigmoid(x: float) -> float:
    if x >= 0.0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _softplus(x: float) -> float:
    return max(x, 0.0) + math.log1p(math.exp(-abs(x)))


class Activation(Enum):
    """Supported activation functions."""

    LINEAR = "linear"
    RECTIFIER = "rectifier"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SOFTPLUS = "softplus"

    def to_function(self) -> ActivationFn:
        return _FUNCTIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "Activation":
        try:
            return ACTIVATION_ALIASES[name.lower()]
        except KeyError:
            raise ConfigurationError(f"Unknown activation function: {name}") from None


_FUNCTIONS = MappingProxyType({
    Activation.LINEAR: _linear,
    Activation.RECTIFIER: _rectifier,
    Activation.SIGMOID: _sigmoid,
    Activation.TANH: math.tanh,
    Activation.SOFTPLUS: _softplus,
})

ACTIVATION_ALIASES = MappingProxyType({
    **{a.value: a for a in Activation},
    "relu": Activation.RECTIFIER,
})


def get_activation_function(name: str) -> ActivationFn:
    return Activation.from_name(name).to_function()
