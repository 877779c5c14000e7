"""
Node types of the layered neural controller.

Nodes are a tagged variant: ``kind`` selects the payload and the evaluation
branch in ``NodeGraph``. Sources are referenced by ``NodeHandle`` rather than
by object, so a node never owns another node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from ..core.types import SensorRef, Side
from .activation import ActivationFn


class NodeKind(Enum):
    SENSOR = "sensor"
    PATTERN = "pattern"
    INTER = "inter"
    MOTOR = "motor"


@dataclass(frozen=True)
class NodeHandle:
    layer: str
    position: int

    def __str__(self) -> str:
        return f"{self.layer}[{self.position}]"


@dataclass
class Input:
    source: NodeHandle
    gain: float
    offset: float = 0.0
    contribution: float = 0.0  # accumulated |gain * source output|


@dataclass(frozen=True)
class SensorPayload:
    sensor: SensorRef
    delay: float


@dataclass(frozen=True)
class PatternPayload:
    t0: float
    sigma: float
    period: float


@dataclass(frozen=True)
class MotorPayload:
    actuator: str


Payload = Union[SensorPayload, PatternPayload, MotorPayload, None]


@dataclass
class Node:
    """
    A unit of the control graph producing one scalar per step.

    ``index`` is the node's identity for monosynaptic matching: the model index
    of the sensed or driven actuator/dof, or the layer position otherwise.
    ``par_name`` is the side-less name used in parameter names of nodes that
    have no actuator to decompose.
    """

    kind: NodeKind
    handle: NodeHandle
    index: int
    name: str
    side: Side
    activation: ActivationFn
    type_tag: str
    par_name: str
    offset: float = 0.0
    actuator: Optional[str] = None
    source_name: Optional[str] = None
    payload: Payload = None
    inputs: List[Input] = field(default_factory=list)

    # per-step cache
    step: int = -1
    net_input: float = 0.0
    output: float = 0.0

    @property
    def layer(self) -> str:
        return self.handle.layer
