"""Thread-parallel evaluation of a population of parameter vectors."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import numpy as np
from tqdm import tqdm

from .objective import SimulationObjective


def evaluate_population(
    objective: SimulationObjective,
    xs: Sequence[np.ndarray],
    num_workers: Optional[int] = None,
    progress: bool = False,
    desc: str = "Evaluating",
) -> np.ndarray:
    """
    Costs of all candidates, in the order of ``xs``.

    Every evaluation builds its own model and controller, so the worker
    threads share nothing but the read-only objective.
    """
    if num_workers is not None and num_workers <= 1:
        costs = [objective.evaluate(x) for x in tqdm(xs, desc=desc, leave=False, disable=not progress)]
    else:
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            costs = list(tqdm(
                executor.map(objective.evaluate, xs),
                total=len(xs),
                desc=desc,
                leave=False,
                disable=not progress,
            ))
    return np.array(costs, dtype=float)
