"""
Layered node graph with pull-based, once-per-step evaluation.

Layers are flat arenas of nodes. Nodes reference their sources through
``(layer, position)`` handles; a source must exist before a node referencing
it is added, so a graph built layer by layer cannot contain a cycle.
"""

from __future__ import annotations

import math
from typing import Dict, Iterator, List

from ..core.base import SimulationModel
from ..core.config import ConfigurationError
from .nodes import Node, NodeHandle, NodeKind


def pattern_output(time: float, t0: float, sigma: float, period: float) -> float:
    """Periodic Gaussian pulse centred on ``t0``."""
    t = (time - t0 + 0.5 * period) % period - 0.5 * period
    return math.exp(-(t * t) / (sigma * sigma))


class NodeGraph:
    def __init__(self, model: SimulationModel):
        self.model = model
        self.layers: Dict[str, List[Node]] = {}
        self.step = 0

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def add_layer(self, name: str) -> List[Node]:
        if name in self.layers:
            raise ConfigurationError(f"Duplicate layer: {name}")
        self.layers[name] = []
        return self.layers[name]

    def layer(self, name: str) -> List[Node]:
        try:
            return self.layers[name]
        except KeyError:
            raise ConfigurationError(f"Unknown input layer: {name!r}") from None

    def next_handle(self, layer: str) -> NodeHandle:
        return NodeHandle(layer, len(self.layer(layer)))

    def node(self, handle: NodeHandle) -> Node:
        return self.layers[handle.layer][handle.position]

    def add_node(self, node: Node) -> Node:
        nodes = self.layer(node.layer)
        if node.handle.position != len(nodes):
            raise ConfigurationError(f"Node {node.name} added out of order at {node.handle}")
        for i in node.inputs:
            self._check_source(node, i.source)
        nodes.append(node)
        return node

    def _check_source(self, node: Node, source: NodeHandle) -> None:
        nodes = self.layers.get(source.layer)
        if nodes is None or source.position >= len(nodes):
            raise ConfigurationError(
                f"Node {node.name} references {source}, which is not constructed yet"
            )

    def validate(self) -> None:
        """Reject any cycle in the input references."""
        active, done = 1, 2
        state: Dict[NodeHandle, int] = {}
        for node in self.nodes():
            if state.get(node.handle) == done:
                continue
            state[node.handle] = active
            stack = [(node.handle, iter(node.inputs))]
            while stack:
                handle, inputs = stack[-1]
                i = next(inputs, None)
                if i is None:
                    state[handle] = done
                    stack.pop()
                    continue
                if state.get(i.source) == active:
                    raise ConfigurationError(f"Cyclic connection through {i.source}")
                if i.source not in state:
                    state[i.source] = active
                    stack.append((i.source, iter(self.node(i.source).inputs)))

    def nodes(self) -> Iterator[Node]:
        for nodes in self.layers.values():
            yield from nodes

    def __len__(self) -> int:
        return sum(len(nodes) for nodes in self.layers.values())

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def advance(self) -> None:
        """Invalidate all cached outputs; call once per control step."""
        self.step += 1

    def evaluate(self, node: Node, offset: float = 0.0) -> float:
        """
        Output of ``node`` for the current step.

        The net input is computed on the first call of a step and reused by
        later calls; ``offset`` is added before the activation function.
        """
        if node.step != self.step:
            value = node.offset + self._base_value(node)
            for i in node.inputs:
                contribution = i.gain * self.evaluate(self.node(i.source), i.offset)
                i.contribution += abs(contribution)
                value += contribution
            node.net_input = value
            node.output = node.activation(value)
            node.step = self.step
        if offset:
            return node.activation(node.net_input + offset)
        return node.output

    def _base_value(self, node: Node) -> float:
        kind = node.kind
        if kind is NodeKind.SENSOR:
            return self.model.get_delayed_value(node.payload.sensor, node.payload.delay)
        if kind is NodeKind.PATTERN:
            p = node.payload
            return pattern_output(self.model.get_time(), p.t0, p.sigma, p.period)
        if kind is NodeKind.INTER or kind is NodeKind.MOTOR:
            return 0.0
        raise ValueError(f"Unknown node kind: {kind}")

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def contributions(self) -> Dict[str, Dict[str, float]]:
        """Accumulated absolute input contributions per node and source."""
        report = {}
        for node in self.nodes():
            if node.inputs:
                report[node.name] = {self.node(i.source).name: i.contribution for i in node.inputs}
        return report

    def reset_contributions(self) -> None:
        for node in self.nodes():
            for i in node.inputs:
                i.contribution = 0.0
