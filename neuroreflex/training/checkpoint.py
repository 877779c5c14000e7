"""
Checkpoint management utilities.

Optimizer state is pickled; best parameters are written as JSON parameter
files that ``ParameterBinding.load`` reads back.
"""

import json
import pickle
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..params import ParamInfo


def save_checkpoint(
    path: str,
    optimizer: Any,
    training_state: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Save a training checkpoint.

    Args:
        path: Path to save checkpoint
        optimizer: Optimizer instance (must be picklable)
        training_state: Generation, best cost, best parameters, history
        metadata: Additional metadata to save
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    checkpoint = {
        "optimizer": optimizer,
        "training_state": training_state,
        "metadata": metadata or {},
    }
    with open(path, "wb") as f:
        pickle.dump(checkpoint, f)


def load_checkpoint(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return pickle.load(f)


def save_parameters(path: str, infos: Sequence[ParamInfo], x: np.ndarray, cost: Optional[float] = None) -> None:
    """Write a parameter vector as a name -> value parameter file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "values": {info.name: float(v) for info, v in zip(infos, x)},
        "infos": [asdict(info) for info in infos],
    }
    if cost is not None:
        data["cost"] = float(cost)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
