"""
Configuration classes for reflex and neural controllers.

Parameter declarations (``ParamSpec``) are kept raw here and interpreted by
the parameter binding: a number is a fixed value, a string reads
``"mean~std<min,max>"``, and a dict may hold ``mean``, ``std``, ``init_min``,
``init_max``, ``min``, ``max`` and ``is_free``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import (
    CONTROL_VALUE_MAX,
    CONTROL_VALUE_MIN,
    DEFAULT_DELAY_FACTOR,
    DEFAULT_INTER_ACTIVATION,
    DEFAULT_MOTOR_ACTIVATION,
    DEFAULT_PATTERN_PERIOD,
    DEFAULT_PATTERN_SIGMA,
    DEFAULT_SENSOR_ACTIVATION,
)
from .types import Range

ParamSpec = Union[float, str, Dict[str, Any], None]


class ConfigurationError(ValueError):
    """Invalid controller configuration, raised before any simulation step."""


def _build(cls, data: Dict[str, Any], context: str):
    if not isinstance(data, dict):
        raise ConfigurationError(f"{context}: expected a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"{context}: unknown keys {sorted(unknown)}")
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigurationError(f"{context}: {e}") from e


# =============================================================================
# Neural Controller
# =============================================================================


@dataclass
class InputConfig:
    """Connection rule declaration of a node."""

    connect: Optional[str] = None  # defaults to "source" if a source is given
    type: str = "*"
    input_layer: Optional[str] = None
    source: Optional[str] = None
    gain: ParamSpec = None
    offset: ParamSpec = None

    def __post_init__(self):
        if self.connect is None:
            self.connect = "source" if self.source else "none"

    @property
    def declaration(self) -> Dict[str, ParamSpec]:
        return {"gain": self.gain, "offset": self.offset}

    @classmethod
    def from_dict(cls, data: dict) -> "InputConfig":
        return _build(cls, data, "input")


@dataclass
class SensorLayerConfig:
    """One sensor node per matching actuator (muscle types) or dof (dof types)."""

    type: str
    include: str = "*"
    exclude: str = ""
    activation: str = DEFAULT_SENSOR_ACTIVATION

    @classmethod
    def from_dict(cls, data: dict) -> "SensorLayerConfig":
        return _build(cls, data, "sensor layer")


@dataclass
class PatternLayerConfig:
    """Time-driven pulse generators, optionally mirrored to both sides."""

    neurons: int = 1
    mirrored: bool = True
    t0: ParamSpec = 0.0
    sigma: ParamSpec = DEFAULT_PATTERN_SIGMA
    period: ParamSpec = DEFAULT_PATTERN_PERIOD

    @classmethod
    def from_dict(cls, data: dict) -> "PatternLayerConfig":
        return _build(cls, data, "pattern layer")


@dataclass
class InterLayerConfig:
    name: str
    neurons: int = 1
    mirrored: bool = True
    activation: str = DEFAULT_INTER_ACTIVATION
    offset: ParamSpec = None
    inputs: List[InputConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "InterLayerConfig":
        data = dict(data)
        data["name"] = str(data.get("name", ""))
        data["inputs"] = [InputConfig.from_dict(i) for i in data.get("inputs", [])]
        return _build(cls, data, f"inter layer {data['name']}")


@dataclass
class MotorLayerConfig:
    include: str = "*"
    exclude: str = ""
    activation: str = DEFAULT_MOTOR_ACTIVATION
    offset: ParamSpec = None
    inputs: List[InputConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "MotorLayerConfig":
        data = dict(data)
        data["inputs"] = [InputConfig.from_dict(i) for i in data.get("inputs", [])]
        return _build(cls, data, "motor layer")


@dataclass
class NeuralControllerConfig:
    """Configuration for the layered neural controller."""

    parameter_mode: str = "virtual"  # 'muscle', 'dof', 'virtual', 'virtual_dof'
    synergy_policy: str = "shared_joint"  # 'shared_joint', 'shared_dof'
    delays: Dict[str, float] = field(default_factory=dict)
    delay_factor: float = DEFAULT_DELAY_FACTOR
    default_delay: Optional[float] = None
    sensor_layers: List[SensorLayerConfig] = field(default_factory=list)
    pattern_layer: Optional[PatternLayerConfig] = None
    inter_layers: List[InterLayerConfig] = field(default_factory=list)
    motor_layer: MotorLayerConfig = field(default_factory=MotorLayerConfig)

    TYPE = "NeuralController"

    @classmethod
    def from_dict(cls, data: dict) -> "NeuralControllerConfig":
        data = {k: v for k, v in data.items() if k != "type"}
        data["sensor_layers"] = [SensorLayerConfig.from_dict(s) for s in data.get("sensor_layers", [])]
        if data.get("pattern_layer") is not None:
            data["pattern_layer"] = PatternLayerConfig.from_dict(data["pattern_layer"])
        data["inter_layers"] = [InterLayerConfig.from_dict(i) for i in data.get("inter_layers", [])]
        data["motor_layer"] = MotorLayerConfig.from_dict(data.get("motor_layer", {}))
        return _build(cls, data, cls.TYPE)

    def to_dict(self) -> dict:
        return {"type": self.TYPE, **asdict(self)}

    def save(self, path: str) -> None:
        _save_json(self.to_dict(), path)


# =============================================================================
# Reflex Controller
# =============================================================================


@dataclass
class ConditionConfig:
    """Suppress a reflex while ``dof`` moves on its own toward ``pos_range`` (degrees)."""

    dof: str
    pos_range: Range

    def __post_init__(self):
        self.pos_range = Range.from_value(self.pos_range)

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionConfig":
        return _build(cls, data, "condition")


REFLEX_GAIN_KEYS: Mapping[str, tuple] = MappingProxyType({
    "MuscleReflex": ("KL", "L0", "KV", "KF", "C0"),
    "DofReflex": ("KP", "P0", "KV", "V0", "C0"),
})


@dataclass
class ReflexConfig:
    target: str
    type: str = "MuscleReflex"
    source: Optional[str] = None
    delay: ParamSpec = None
    min_control_value: float = CONTROL_VALUE_MIN
    max_control_value: float = CONTROL_VALUE_MAX
    gains: Dict[str, ParamSpec] = field(default_factory=dict)
    condition: Optional[ConditionConfig] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReflexConfig":
        data = dict(data)
        reflex_type = data.get("type", "MuscleReflex")
        if reflex_type not in REFLEX_GAIN_KEYS:
            raise ConfigurationError(f"Unknown reflex type: {reflex_type}")
        gains = dict(data.pop("gains", {}))
        for key in REFLEX_GAIN_KEYS[reflex_type]:
            if key in data:
                gains[key] = data.pop(key)
        data["gains"] = gains
        if data.get("condition") is not None:
            data["condition"] = ConditionConfig.from_dict(data["condition"])
        return _build(cls, data, f"reflex {data.get('target', '?')}")

    def to_dict(self) -> dict:
        result = asdict(self)
        result.update(result.pop("gains"))
        return result


@dataclass
class ReflexControllerConfig:
    reflexes: List[ReflexConfig] = field(default_factory=list)
    symmetric: bool = True

    TYPE = "ReflexController"

    @classmethod
    def from_dict(cls, data: dict) -> "ReflexControllerConfig":
        data = {k: v for k, v in data.items() if k != "type"}
        data["reflexes"] = [ReflexConfig.from_dict(r) for r in data.get("reflexes", [])]
        return _build(cls, data, cls.TYPE)

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "symmetric": self.symmetric,
            "reflexes": [r.to_dict() for r in self.reflexes],
        }

    def save(self, path: str) -> None:
        _save_json(self.to_dict(), path)


ControllerConfig = Union[NeuralControllerConfig, ReflexControllerConfig]

CONFIG_TYPES = MappingProxyType({
    NeuralControllerConfig.TYPE: NeuralControllerConfig,
    ReflexControllerConfig.TYPE: ReflexControllerConfig,
})


def controller_config_from_dict(data: dict) -> ControllerConfig:
    config_type = data.get("type")
    if config_type not in CONFIG_TYPES:
        raise ConfigurationError(f"Unknown controller type: {config_type}")
    return CONFIG_TYPES[config_type].from_dict(data)


def load_controller_config(path: str) -> ControllerConfig:
    """Load a controller configuration from a JSON file."""
    with open(path, "r") as f:
        return controller_config_from_dict(json.load(f))


def _save_json(data: dict, path: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
