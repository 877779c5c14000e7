"""
Simulation objective: parameter vector in, cost out.

The objective builds a fresh model, parameter binding, controller and
measure for every evaluation, so evaluations never share state and may run
in parallel threads.
"""

from __future__ import annotations

import logging
import math
from functools import wraps
from typing import Callable, List

import numpy as np

from ..controllers import create_controller
from ..core.base import Measure, SimulationModel
from ..core.config import ControllerConfig
from ..core.constants import DEFAULT_SIMULATION_DURATION, FAILED_EVALUATION_COST
from ..params import ParameterBinding, ParamInfo

ModelFactory = Callable[[], SimulationModel]
MeasureFactory = Callable[[SimulationModel], Measure]


def handle_evaluation_errors(func):
    """Report a failed evaluation as the worst possible cost."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logging.error(f"Error in {func.__name__}: {e}", exc_info=True)
            return FAILED_EVALUATION_COST
        if result is None or math.isnan(result):
            logging.warning(f"{func.__name__} returned {result}, reporting a failed evaluation")
            return FAILED_EVALUATION_COST
        return result

    return wrapper


class SimulationObjective:
    """
    Cost of a controller configuration for a given parameter vector.

    Args:
        controller_config: Controller to build for each evaluation.
        model_factory: Creates a new simulation model with a ``simulate``
            method (see ``MuJoCoModel.simulate``).
        measure_factory: Creates the measure for a model.
        duration: Simulated time per evaluation (seconds).
    """

    def __init__(
        self,
        controller_config: ControllerConfig,
        model_factory: ModelFactory,
        measure_factory: MeasureFactory,
        duration: float = DEFAULT_SIMULATION_DURATION,
    ):
        self.controller_config = controller_config
        self.model_factory = model_factory
        self.measure_factory = measure_factory
        self.duration = duration

        # a first construction discovers the free parameters and their order
        model = model_factory()
        params = ParameterBinding(use_mean=True)
        controller = create_controller(controller_config, params, model)
        measure = measure_factory(model)
        self._infos = params.free_infos()
        self._mean = params.to_vector()
        self._signature = ".".join(
            s for s in (controller.get_signature(), measure.get_signature(), f"D{duration:.0f}") if s
        )
        logging.info(f"Objective {self._signature}: {len(self._infos)} free parameters")

    @property
    def dim(self) -> int:
        return len(self._infos)

    def param_infos(self) -> List[ParamInfo]:
        return list(self._infos)

    def initial_mean(self) -> np.ndarray:
        return self._mean.copy()

    def initial_std(self) -> np.ndarray:
        return np.array([info.init_std for info in self._infos], dtype=float)

    def bounds(self) -> np.ndarray:
        """Lower and upper parameter bounds, shape (dim, 2)."""
        return np.array([(info.min, info.max) for info in self._infos], dtype=float).reshape(-1, 2)

    def binding(self, x: np.ndarray) -> ParameterBinding:
        return ParameterBinding.from_vector(self._infos, x, use_mean=True)

    @handle_evaluation_errors
    def evaluate(self, x: np.ndarray) -> float:
        model = self.model_factory()
        controller = create_controller(self.controller_config, self.binding(x), model)
        measure = self.measure_factory(model)
        return model.simulate(controller, self.duration, measure)

    def signature(self) -> str:
        return self._signature
