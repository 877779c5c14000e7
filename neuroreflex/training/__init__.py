"""
Optimization of controller parameters.

- SimulationObjective: parameter vector -> cost, one fresh simulation per call
- DofLimitMeasure: penalty on dofs leaving their ranges
- evaluate_population: thread-parallel evaluation of candidates
- run_cmaes_training / CMAESTrainer: CMA-ES driver built on the cmaes library
- checkpoint: pickled optimizer state and JSON parameter files

Usage:
    from neuroreflex.training import SimulationObjective, run_cmaes_training

    objective = SimulationObjective(config, model_factory, measure_factory, duration=5.0)
    results = run_cmaes_training(objective, CMAESConfig(num_generations=100))
"""

from .checkpoint import load_checkpoint, save_checkpoint, save_parameters
from .measures import DofLimitConfig, DofLimitMeasure, DofLimitMeasureConfig
from .objective import SimulationObjective, handle_evaluation_errors
from .parallel import evaluate_population
from .train_cmaes import CMAESConfig, CMAESTrainer, run_cmaes_training

__all__ = [
    "load_checkpoint",
    "save_checkpoint",
    "save_parameters",
    "DofLimitConfig",
    "DofLimitMeasure",
    "DofLimitMeasureConfig",
    "SimulationObjective",
    "handle_evaluation_errors",
    "evaluate_population",
    "CMAESConfig",
    "CMAESTrainer",
    "run_cmaes_training",
]
