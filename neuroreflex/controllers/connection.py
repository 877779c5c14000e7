"""
Connection rules and their resolution into weighted inputs.

A rule selects source nodes from one layer for a target node. For each
admitted source, the gain and offset are assembled from shared parameters
named after the virtual muscle contributions of both ends of the connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.base import SimulationModel
from ..core.config import ConfigurationError, InputConfig, ParamSpec
from ..core.constants import CONTRALATERAL_SUFFIX, OFFSET_PARAM_MARKER, SENSOR_LAYER
from ..core.types import Side, get_name_no_side, pattern_match
from ..params import ParameterBinding
from .correlation import CorrelationResolver, Role, VirtualMuscleContribution
from .nodes import Node, NodeHandle, NodeKind


class ConnectionKind(Enum):
    NONE = "none"
    BILATERAL = "bilateral"
    MONOSYNAPTIC = "monosynaptic"
    ANTAGONISTIC = "antagonistic"
    AGONISTIC = "agonistic"
    SYNERGETIC = "synergetic"
    IPSILATERAL = "ipsilateral"
    CONTRALATERAL = "contralateral"
    SOURCE = "source"


CONNECTION_KINDS = MappingProxyType({
    **{kind.value: kind for kind in ConnectionKind},
    "protagonistic": ConnectionKind.AGONISTIC,  # older configurations
})


def parse_connection_kind(name: str) -> ConnectionKind:
    try:
        return CONNECTION_KINDS[name]
    except KeyError:
        raise ConfigurationError(f"Invalid connection type: {name}") from None


class SynergyPolicy(Enum):
    """What counts as a synergetic relation between two actuators."""

    SHARED_JOINT = "shared_joint"
    SHARED_DOF = "shared_dof"

    @classmethod
    def from_name(cls, name: str) -> "SynergyPolicy":
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(f"Unknown synergy policy: {name}") from None


def fix_layer_name(name: str) -> str:
    """Numeric inter layer names ``"1"``, ``"2"`` become ``"N1"``, ``"N2"``."""
    return f"N{name}" if name.isdigit() and int(name) > 0 else name


@dataclass(frozen=True)
class ConnectionRule:
    kind: ConnectionKind
    type_pattern: str = "*"
    input_layer: str = SENSOR_LAYER
    source: Optional[str] = None
    declaration: Dict[str, ParamSpec] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: InputConfig) -> "ConnectionRule":
        kind = parse_connection_kind(config.connect)
        if kind is ConnectionKind.SOURCE and not config.source:
            raise ConfigurationError("Connection type 'source' requires a source name")
        if config.input_layer is not None:
            layer = fix_layer_name(str(config.input_layer))
        else:
            layer = "" if kind is ConnectionKind.NONE else SENSOR_LAYER
        return cls(
            kind=kind,
            type_pattern=config.type,
            input_layer=layer,
            source=config.source,
            declaration=config.declaration,
        )


@dataclass(frozen=True)
class ResolvedInput:
    source: NodeHandle
    gain: float
    offset: float
    par_names: Tuple[str, ...]


class ConnectionResolver:
    """Applies connection rules for one controller instance."""

    def __init__(
        self,
        model: SimulationModel,
        correlations: CorrelationResolver,
        params: ParameterBinding,
        synergy_policy: SynergyPolicy = SynergyPolicy.SHARED_JOINT,
    ):
        self.model = model
        self.correlations = correlations
        self.params = params
        self.synergy_policy = synergy_policy

    def admits(self, target: Node, candidate: Node, rule: ConnectionRule) -> bool:
        if not pattern_match(candidate.type_tag, rule.type_pattern):
            return False

        kind = rule.kind
        if kind is ConnectionKind.BILATERAL:
            return True
        if kind is ConnectionKind.MONOSYNAPTIC:
            # sensors match on the sensed actuator; other layers on position
            if candidate.kind is NodeKind.SENSOR:
                return target.actuator is not None and candidate.source_name == target.actuator
            return candidate.index == target.index
        if kind in (ConnectionKind.ANTAGONISTIC, ConnectionKind.AGONISTIC, ConnectionKind.SYNERGETIC):
            if target.actuator is None or candidate.actuator is None:
                return False
            return self._related(kind, target.actuator, candidate.actuator)
        if kind is ConnectionKind.IPSILATERAL:
            return candidate.side == target.side or candidate.side is Side.NONE
        if kind is ConnectionKind.CONTRALATERAL:
            return candidate.side != target.side or candidate.side is Side.NONE
        if kind is ConnectionKind.SOURCE:
            return get_name_no_side(candidate.source_name or candidate.name) == rule.source
        if kind is ConnectionKind.NONE:
            return False
        raise ConfigurationError(f"Invalid connection type: {kind}")

    def _related(self, kind: ConnectionKind, a: str, b: str) -> bool:
        if kind is ConnectionKind.ANTAGONISTIC:
            return self.model.is_antagonist(a, b)
        if kind is ConnectionKind.AGONISTIC:
            return self.model.is_agonist(a, b)
        if self.synergy_policy is SynergyPolicy.SHARED_JOINT:
            return self.model.shares_joint(a, b)
        return self.model.is_agonist(a, b) or self.model.is_antagonist(a, b)

    def contributions(self, node: Node, role: Role) -> Sequence[VirtualMuscleContribution]:
        if node.actuator is not None:
            contributions = self.correlations.decompose(node.actuator, role)
            if contributions:
                return contributions
        return (VirtualMuscleContribution(node.par_name, 1.0),)

    def _conflicting(self, a: Iterable[str], b: Iterable[str]) -> bool:
        """True if the two dof sets hold different axes of one joint."""
        b = tuple(b)
        return any(x != y and self.model.joint_of(x) == self.model.joint_of(y) for x in a for y in b)

    def parameter_names(self, target: Node, source: Node) -> List[Tuple[str, float]]:
        """Gain parameter names and correlation factors for one connection."""
        contralateral = Side.NONE not in (target.side, source.side) and target.side != source.side
        names = []
        for tc in self.contributions(target, Role.TARGET):
            for sc in self.contributions(source, Role.SENSOR):
                if self._conflicting(tc.dofs, sc.dofs):
                    continue
                source_name = sc.name + CONTRALATERAL_SUFFIX if contralateral else sc.name
                base = tc.name if tc.name == source_name else f"{tc.name}.{source_name}"
                names.append((f"{base}.{source.type_tag}", tc.correlation * sc.correlation))
        return names

    def resolve(self, target: Node, rule: ConnectionRule, candidates: Iterable[Node]) -> List[ResolvedInput]:
        resolved = []
        for candidate in candidates:
            if not self.admits(target, candidate, rule):
                continue
            gain, offset = 0.0, 0.0
            names = self.parameter_names(target, candidate)
            for name, factor in names:
                gain += factor * self.params.get_or_create(name, rule.declaration, "gain", 0.0)
                offset += factor * self.params.get_or_create(
                    name + OFFSET_PARAM_MARKER, rule.declaration, "offset", 0.0
                )
            resolved.append(ResolvedInput(candidate.handle, gain, offset, tuple(n for n, _ in names)))
        return resolved
