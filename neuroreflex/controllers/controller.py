"""
Controller façades: the layered neural controller and the reflex controller.

Both are constructed once per model instance from a configuration and a
parameter binding, and are then invoked once per control step by the
simulation loop.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from ..core.base import Controller, SimulationModel
from ..core.config import (
    ConfigurationError,
    ControllerConfig,
    InterLayerConfig,
    MotorLayerConfig,
    NeuralControllerConfig,
    PatternLayerConfig,
    ReflexControllerConfig,
    SensorLayerConfig,
)
from ..core.constants import (
    DEFAULT_SENSOR_ACTIVATION,
    DOF_SENSOR_TYPES,
    MOTOR_LAYER,
    MOTOR_TYPE_TAG,
    MUSCLE_SENSOR_TYPES,
    PATTERN_LAYER,
    PATTERN_TYPE_TAG,
    SENSOR_LAYER,
)
from ..core.types import SensorRef, Side, get_name_no_side, pattern_match
from ..params import ParameterBinding
from .activation import get_activation_function
from .connection import ConnectionResolver, ConnectionRule, SynergyPolicy, fix_layer_name
from .correlation import CorrelationResolver, ParameterMode, Role
from .graph import NodeGraph
from .nodes import Input, MotorPayload, Node, NodeKind, PatternPayload, SensorPayload
from .reflex import Reflex, create_reflex


def _select(names: List[str], include: str, exclude: str) -> List[str]:
    return [n for n in names if pattern_match(n, include) and not (exclude and pattern_match(n, exclude))]


class NeuralController(Controller):
    """
    Layered neural controller.

    Layers are built in order: sensors (``"0"``), an optional pattern layer
    (``"CPG"``), the named inter layers and finally one motor node per
    actuator. Every gain, offset and pattern timing is drawn from ``params``
    under a name shared by anatomically equivalent nodes.
    """

    def __init__(self, config: NeuralControllerConfig, params: ParameterBinding, model: SimulationModel):
        super().__init__()
        self.config = config
        self.params = params
        self.graph = NodeGraph(model)
        self.correlations = CorrelationResolver(model, ParameterMode.from_name(config.parameter_mode))
        self.connections = ConnectionResolver(
            model, self.correlations, params, SynergyPolicy.from_name(config.synergy_policy)
        )

        self.graph.add_layer(SENSOR_LAYER)
        for layer in config.sensor_layers:
            self._add_sensor_layer(layer)
        if config.pattern_layer is not None:
            self._add_pattern_layer(config.pattern_layer)
        for layer in config.inter_layers:
            self._add_inter_layer(layer)
        self._add_motor_layer(config.motor_layer)
        self.graph.validate()

        logging.info(
            "Created neural controller: %s nodes, %s parameters (%s)",
            len(self.graph),
            len(params),
            ", ".join(f"{name}={len(nodes)}" for name, nodes in self.graph.layers.items()),
        )

    @property
    def model(self) -> SimulationModel:
        return self.graph.model

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def get_delay(self, name: str) -> float:
        """Sensor delay of a side-less body part name, scaled by the delay factor."""
        delay = self.config.delays.get(name, self.config.default_delay)
        if delay is None:
            raise ConfigurationError(f"No sensor delay defined for {name}")
        return delay * self.config.delay_factor

    def _add_sensor_layer(self, config: SensorLayerConfig) -> None:
        if config.type in MUSCLE_SENSOR_TYPES:
            names = self.model.actuator_names()
        elif config.type in DOF_SENSOR_TYPES:
            names = self.model.dof_names()
        else:
            raise ConfigurationError(f"Unknown sensor type: {config.type}")

        activation = get_activation_function(config.activation or DEFAULT_SENSOR_ACTIVATION)
        for target in _select(names, config.include, config.exclude):
            sensor = SensorRef(config.type, target)
            par_name = get_name_no_side(target)
            self.graph.add_node(Node(
                kind=NodeKind.SENSOR,
                handle=self.graph.next_handle(SENSOR_LAYER),
                index=names.index(target),
                name=str(sensor),
                side=self.model.side(target),
                activation=activation,
                type_tag=config.type,
                par_name=par_name,
                actuator=target if sensor.is_muscle_sensor else None,
                source_name=target,
                payload=SensorPayload(sensor, self.get_delay(par_name)),
            ))

    def _add_pattern_layer(self, config: PatternLayerConfig) -> None:
        self.graph.add_layer(PATTERN_LAYER)
        declaration = {"t0": config.t0, "sigma": config.sigma, "period": config.period}
        period = self.params.get_or_create(f"{PATTERN_LAYER}.period", declaration, "period")
        sigma = self.params.get_or_create(f"{PATTERN_LAYER}.sigma", declaration, "sigma")
        if period <= 0.0 or sigma <= 0.0:
            raise ConfigurationError(f"Pattern period and sigma must be positive, got {period} and {sigma}")

        sides = [Side.LEFT, Side.RIGHT] if config.mirrored else [Side.NONE]
        activation = get_activation_function("linear")
        for i in range(config.neurons):
            par_name = f"{PATTERN_LAYER}{i}"
            t0 = self.params.get_or_create(f"{par_name}.t0", declaration, "t0")
            for side in sides:
                handle = self.graph.next_handle(PATTERN_LAYER)
                # the right side runs half a period behind the left
                shift = 0.5 * period if side is Side.RIGHT else 0.0
                self.graph.add_node(Node(
                    kind=NodeKind.PATTERN,
                    handle=handle,
                    index=handle.position,
                    name=par_name + side.suffix,
                    side=side,
                    activation=activation,
                    type_tag=PATTERN_TYPE_TAG,
                    par_name=par_name,
                    payload=PatternPayload(t0 + shift, sigma, period),
                ))

    def _resolve_inputs(self, node: Node, rules: List[ConnectionRule]) -> None:
        for rule in rules:
            if not rule.input_layer:
                continue
            candidates = self.graph.layer(rule.input_layer)
            for resolved in self.connections.resolve(node, rule, candidates):
                node.inputs.append(Input(resolved.source, resolved.gain, resolved.offset))

    def _add_inter_layer(self, config: InterLayerConfig) -> None:
        layer = fix_layer_name(config.name)
        if not layer:
            raise ConfigurationError("Inter layer requires a name")
        self.graph.add_layer(layer)
        rules = [ConnectionRule.from_config(i) for i in config.inputs]
        activation = get_activation_function(config.activation)
        sides = [Side.LEFT, Side.RIGHT] if config.mirrored else [Side.NONE]

        for i in range(config.neurons):
            par_name = f"{layer}_{i}"
            offset = self.params.get_or_create(f"{par_name}.C0", {"offset": config.offset}, "offset")
            for side in sides:
                handle = self.graph.next_handle(layer)
                node = Node(
                    kind=NodeKind.INTER,
                    handle=handle,
                    index=handle.position,
                    name=par_name + side.suffix,
                    side=side,
                    activation=activation,
                    type_tag=layer,
                    par_name=par_name,
                    offset=offset,
                )
                self._resolve_inputs(node, rules)
                self.graph.add_node(node)

    def _add_motor_layer(self, config: MotorLayerConfig) -> None:
        self.graph.add_layer(MOTOR_LAYER)
        rules = [ConnectionRule.from_config(i) for i in config.inputs]
        activation = get_activation_function(config.activation)
        actuators = self.model.actuator_names()
        declaration = {"offset": config.offset}

        for actuator in _select(actuators, config.include, config.exclude):
            node = Node(
                kind=NodeKind.MOTOR,
                handle=self.graph.next_handle(MOTOR_LAYER),
                index=actuators.index(actuator),
                name=actuator,
                side=self.model.side(actuator),
                activation=activation,
                type_tag=MOTOR_TYPE_TAG,
                par_name=get_name_no_side(actuator),
                actuator=actuator,
                source_name=actuator,
                payload=MotorPayload(actuator),
            )
            node.offset = sum(
                c.correlation * self.params.get_or_create(f"{c.name}.C0", declaration, "offset")
                for c in self.connections.contributions(node, Role.TARGET)
            )
            self._resolve_inputs(node, rules)
            self.graph.add_node(node)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def compute_controls(self, model: SimulationModel, timestamp: float) -> None:
        self.graph.advance()
        for node in self.graph.layer(MOTOR_LAYER):
            model.add_actuator_input(node.payload.actuator, self.graph.evaluate(node))

    def motor_outputs(self) -> Dict[str, float]:
        """Outputs of the motor nodes computed in the last step."""
        return {node.name: node.output for node in self.graph.layer(MOTOR_LAYER)}

    def contributions(self) -> Dict[str, Dict[str, float]]:
        return self.graph.contributions()

    def get_signature(self) -> str:
        layers = "".join(
            f".{name}x{len(nodes)}"
            for name, nodes in self.graph.layers.items()
            if name not in (SENSOR_LAYER, MOTOR_LAYER)
        )
        return f"NC.{self.correlations.mode.value}{layers}"


class ReflexController(Controller):
    """
    Collection of independent reflexes.

    A symmetric configuration instantiates every reflex for the left and the
    right side, both sides sharing one set of parameters.
    """

    def __init__(self, config: ReflexControllerConfig, params: ParameterBinding, model: SimulationModel):
        super().__init__()
        self.config = config
        self.params = params
        sides = [Side.LEFT, Side.RIGHT] if config.symmetric else [Side.NONE]
        self.reflexes: List[Reflex] = [
            create_reflex(reflex, params, model, side) for reflex in config.reflexes for side in sides
        ]
        logging.info("Created reflex controller: %s reflexes, %s parameters", len(self.reflexes), len(params))

    def compute_controls(self, model: SimulationModel, timestamp: float) -> None:
        for reflex in self.reflexes:
            reflex.compute_controls(model, timestamp)

    def get_signature(self) -> str:
        types = sorted({type(r).__name__[0] for r in self.reflexes})
        return f"R{''.join(types)}{len(self.config.reflexes)}"


def create_controller(config: ControllerConfig, params: ParameterBinding, model: SimulationModel) -> Controller:
    """Construct the controller type matching ``config``."""
    if isinstance(config, NeuralControllerConfig):
        return NeuralController(config, params, model)
    if isinstance(config, ReflexControllerConfig):
        return ReflexController(config, params, model)
    raise ConfigurationError(f"Unsupported controller configuration: {type(config).__name__}")
