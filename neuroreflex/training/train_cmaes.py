"""
CMA-ES optimization of controller parameters.

The search runs in a normalized space: candidate ``z`` maps to the parameter
vector ``mean + std * z``, clipped to the parameter bounds, where ``mean`` and
``std`` come from the declared parameter distributions. The search strategy
itself is delegated to the ``cmaes`` library.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from cmaes import CMA
from tqdm import tqdm

from ..core.constants import (
    CHECKPOINT_EXTENSION,
    DEFAULT_CHECKPOINT_EVERY,
    DEFAULT_CMAES_SIGMA,
    DEFAULT_NUM_GENERATIONS,
    DEFAULT_PATIENCE,
    PARAMS_EXTENSION,
)
from .checkpoint import load_checkpoint, save_checkpoint, save_parameters
from .objective import SimulationObjective
from .parallel import evaluate_population


@dataclass
class CMAESConfig:
    """Configuration for CMA-ES training."""

    # CMA-ES parameters
    population_size: Optional[int] = None  # None: library default for the dimension
    sigma_init: float = DEFAULT_CMAES_SIGMA
    seed: Optional[int] = None

    # Training parameters
    num_generations: int = DEFAULT_NUM_GENERATIONS

    # Early stopping
    target_cost: Optional[float] = None
    patience: int = DEFAULT_PATIENCE

    # Checkpointing (in generations)
    checkpoint_period: int = DEFAULT_CHECKPOINT_EVERY

    # Parallelization
    num_workers: Optional[int] = None  # None: ThreadPoolExecutor default

    # Paths
    output_dir: str = "outputs/cmaes"
    resume_from: Optional[str] = None


class CMAESTrainer:
    """Trainer class for CMA-ES optimization."""

    def __init__(self, objective: SimulationObjective, config: CMAESConfig):
        if objective.dim < 2:
            raise ValueError(f"CMA-ES needs at least 2 free parameters, got {objective.dim}")
        self.objective = objective
        self.config = config
        self.output_dir = Path(config.output_dir)

        self._mean = objective.initial_mean()
        std = objective.initial_std()
        self._std = np.where(std > 0.0, std, 1.0)
        bounds = objective.bounds()
        self._lower, self._upper = bounds[:, 0], bounds[:, 1]

        self.generation = 0
        self.best_cost = np.inf
        self.best_params: Optional[np.ndarray] = None
        self.no_improvement_count = 0
        self.history: List[Dict[str, float]] = []

        if config.resume_from:
            self._restore(config.resume_from)
        else:
            self.optimizer = CMA(
                mean=np.zeros(objective.dim),
                sigma=config.sigma_init,
                population_size=config.population_size,
                seed=config.seed,
            )

    def to_params(self, z: np.ndarray) -> np.ndarray:
        return np.clip(self._mean + self._std * z, self._lower, self._upper)

    def train(self) -> Dict[str, Any]:
        """Run CMA-ES training loop."""
        config = self.config
        logging.info(
            f"Starting CMA-ES on {self.objective.signature()}: dim={self.objective.dim}, "
            f"population={self.optimizer.population_size}, generations={config.num_generations}"
        )
        start_time = time.time()

        for gen in tqdm(range(self.generation, config.num_generations), desc="CMA-ES"):
            gen_start = time.time()
            zs = [self.optimizer.ask() for _ in range(self.optimizer.population_size)]
            costs = evaluate_population(
                self.objective, [self.to_params(z) for z in zs], config.num_workers
            )
            # the library cannot digest infinite costs
            finite = np.isfinite(costs)
            worst = costs[finite].max() if finite.any() else 0.0
            told = np.where(finite, costs, worst + abs(worst) + 1.0)
            self.optimizer.tell(list(zip(zs, told)))
            self.generation = gen + 1

            best_idx = int(np.argmin(costs))
            if costs[best_idx] < self.best_cost:
                self.best_cost = float(costs[best_idx])
                self.best_params = self.to_params(zs[best_idx])
                self.no_improvement_count = 0
            else:
                self.no_improvement_count += 1

            stats = {
                "generation": gen,
                "best": float(costs[best_idx]),
                "mean": float(costs[finite].mean()) if finite.any() else float("inf"),
                "failed": int((~finite).sum()),
                "time": time.time() - gen_start,
            }
            self.history.append(stats)
            logging.info(
                f"Gen {gen}: best={stats['best']:.4f}, mean={stats['mean']:.4f}, "
                f"failed={stats['failed']}, time={stats['time']:.1f}s"
            )

            if config.checkpoint_period > 0 and (gen + 1) % config.checkpoint_period == 0:
                self.save(f"gen{gen}")

            if config.target_cost is not None and self.best_cost <= config.target_cost:
                logging.info(f"Target cost reached at generation {gen}")
                break
            if self.no_improvement_count >= config.patience:
                logging.info(f"No improvement for {config.patience} generations, stopping")
                break
            if self.optimizer.should_stop():
                logging.info(f"CMA-ES converged at generation {gen}")
                break

        total_time = time.time() - start_time
        logging.info(f"Training complete in {total_time:.1f}s, best cost {self.best_cost:.4f}")
        self.save("final")

        return {
            "best_cost": self.best_cost,
            "best_params": self.best_params,
            "generations": self.generation,
            "total_time": total_time,
        }

    def save(self, suffix: str) -> None:
        """Save optimizer state and the best parameters found so far."""
        save_checkpoint(
            self.output_dir / f"cmaes_state_{suffix}{CHECKPOINT_EXTENSION}",
            self.optimizer,
            {
                "generation": self.generation,
                "best_cost": self.best_cost,
                "best_params": self.best_params,
                "no_improvement_count": self.no_improvement_count,
                "history": self.history,
            },
            {"signature": self.objective.signature(), "config": asdict(self.config)},
        )
        if self.best_params is not None:
            save_parameters(
                self.output_dir / f"best_{suffix}{PARAMS_EXTENSION}",
                self.objective.param_infos(),
                self.best_params,
                self.best_cost,
            )
        logging.info(f"Checkpoint saved: {suffix}")

    def _restore(self, path: str) -> None:
        checkpoint = load_checkpoint(path)
        signature = checkpoint["metadata"].get("signature")
        if signature != self.objective.signature():
            logging.warning(f"Resuming {signature} with objective {self.objective.signature()}")
        self.optimizer = checkpoint["optimizer"]
        state = checkpoint["training_state"]
        self.generation = state["generation"]
        self.best_cost = state["best_cost"]
        self.best_params = state["best_params"]
        self.no_improvement_count = state["no_improvement_count"]
        self.history = state["history"]
        logging.info(f"Resumed from {path} at generation {self.generation}")


def run_cmaes_training(objective: SimulationObjective, config: Optional[CMAESConfig] = None) -> Dict[str, Any]:
    """
    Main entry point for CMA-ES training.

    Args:
        objective: Objective to minimize
        config: Training configuration (defaults if None)

    Returns:
        Training results
    """
    config = config or CMAESConfig()
    trainer = CMAESTrainer(objective, config)
    return trainer.train()
