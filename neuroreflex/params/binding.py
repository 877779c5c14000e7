"""
Parameter binding: the name-keyed store of optimizable scalars.

A binding is created once per controller instance. The first lookup of a
name creates its value from the declared distribution (or from an externally
supplied search point) and registers it; later lookups of the same name return
the same value, which is how anatomically symmetric nodes share parameters.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from ..core.config import ConfigurationError, ParamSpec

# "mean~std<min,max>", bounds optional
_SPEC_PATTERN = re.compile(
    r"^\s*(?P<mean>[-+0-9.eE]+)\s*~\s*(?P<std>[-+0-9.eE]+)\s*"
    r"(?:<\s*(?P<min>[-+0-9.eEinf]+)\s*,\s*(?P<max>[-+0-9.eEinf]+)\s*>)?\s*$"
)


@dataclass(frozen=True)
class ParamInfo:
    """Declared distribution of one parameter."""

    name: str
    mean: float = 0.0
    std: float = 0.0
    init_min: float = 0.0
    init_max: float = 0.0
    min: float = -math.inf
    max: float = math.inf
    is_free: bool = True

    @classmethod
    def from_spec(cls, name: str, spec: ParamSpec) -> "ParamInfo":
        if isinstance(spec, bool):
            raise ConfigurationError(f"Invalid declaration for parameter {name}: {spec!r}")
        if isinstance(spec, (int, float)):
            return cls(name=name, mean=float(spec), is_free=False)
        if isinstance(spec, str):
            match = _SPEC_PATTERN.match(spec)
            if not match:
                raise ConfigurationError(f"Invalid declaration for parameter {name}: {spec!r}")
            return cls(
                name=name,
                mean=float(match["mean"]),
                std=float(match["std"]),
                min=float(match["min"]) if match["min"] else -math.inf,
                max=float(match["max"]) if match["max"] else math.inf,
            )
        if isinstance(spec, Mapping):
            known = {"mean", "std", "init_min", "init_max", "min", "max", "is_free"}
            unknown = set(spec) - known
            if unknown:
                raise ConfigurationError(f"Parameter {name}: unknown keys {sorted(unknown)}")
            return cls(name=name, **{k: (bool(v) if k == "is_free" else float(v)) for k, v in spec.items()})
        raise ConfigurationError(f"Invalid declaration for parameter {name}: {spec!r}")

    def initial_value(self, rng: np.random.Generator, use_mean: bool = False) -> float:
        if not self.is_free:
            return self.mean
        if self.mean != 0.0 or self.std != 0.0:
            value = self.mean if use_mean else rng.normal(self.mean, self.std)
        elif use_mean:
            value = 0.5 * (self.init_min + self.init_max)
        else:
            value = rng.uniform(self.init_min, self.init_max)
        return float(np.clip(value, self.min, self.max))

    @property
    def init_std(self) -> float:
        """Spread of the initial distribution, used to scale optimizer steps."""
        if self.std != 0.0:
            return self.std
        return (self.init_max - self.init_min) / math.sqrt(12.0)


class ParameterBinding:
    """
    Get-or-create store of named parameters.

    Args:
        values: Optional search point (name -> value). Names found here take
            these values instead of being drawn from their distribution.
        seed: Seed of the instance-local random generator.
        use_mean: Use distribution means instead of random draws.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, float]] = None,
        seed: Optional[int] = None,
        use_mean: bool = False,
    ):
        self._search_point = dict(values or {})
        self._rng = np.random.default_rng(seed)
        self._use_mean = use_mean
        self._values: Dict[str, float] = {}
        self._infos: Dict[str, ParamInfo] = {}

    def get_or_create(
        self,
        name: str,
        declaration: Optional[Mapping[str, ParamSpec]],
        key: str,
        default: float = 0.0,
    ) -> float:
        """
        Value of ``name``; on first use, created from ``declaration[key]``.

        If the name is unknown and nothing is declared under ``key``, the
        default is returned and no parameter is registered.
        """
        if name in self._values:
            return self._values[name]
        spec = declaration.get(key) if declaration else None
        if spec is None:
            return default
        return self.create(name, spec)

    def create(self, name: str, spec: ParamSpec) -> float:
        if name in self._values:
            return self._values[name]
        info = ParamInfo.from_spec(name, spec)
        if info.is_free and name in self._search_point:
            value = float(self._search_point[name])
        else:
            value = info.initial_value(self._rng, self._use_mean)
        self._infos[name] = info
        self._values[name] = value
        return value

    def get(self, name: str) -> float:
        return self._values[name]

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    @property
    def names(self) -> List[str]:
        return list(self._values)

    def infos(self) -> List[ParamInfo]:
        return list(self._infos.values())

    def free_infos(self) -> List[ParamInfo]:
        """Free parameters in creation order; this order defines search vectors."""
        return [info for info in self._infos.values() if info.is_free]

    def to_dict(self) -> Dict[str, float]:
        return dict(self._values)

    def to_vector(self) -> np.ndarray:
        return np.array([self._values[info.name] for info in self.free_infos()], dtype=float)

    @classmethod
    def from_vector(cls, infos: Iterable[ParamInfo], vector: np.ndarray, **kwargs) -> "ParameterBinding":
        infos = list(infos)
        if len(infos) != len(vector):
            raise ValueError(f"Expected {len(infos)} values, got {len(vector)}")
        return cls(values={info.name: float(x) for info, x in zip(infos, vector)}, **kwargs)

    # -------------------------------------------------------------------------
    # Parameter files
    # -------------------------------------------------------------------------

    def save(self, path: str) -> None:
        """Save current values and declarations to JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "values": self._values,
            "infos": [asdict(info) for info in self._infos.values()],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: str, **kwargs) -> "ParameterBinding":
        """Binding whose search point is a saved parameter file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls(values=data.get("values", data), **kwargs)
