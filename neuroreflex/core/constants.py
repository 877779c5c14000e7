"""
Project-wide constants for reflex and neural controllers.

All default values should be defined here and imported elsewhere.
"""

from typing import Final, Tuple

# =============================================================================
# Sensor Types
# =============================================================================

SENSOR_TYPE_FORCE: Final[str] = "F"
SENSOR_TYPE_LENGTH: Final[str] = "L"
SENSOR_TYPE_VELOCITY: Final[str] = "V"
SENSOR_TYPE_DOF_POSITION: Final[str] = "DP"
SENSOR_TYPE_DOF_VELOCITY: Final[str] = "DV"

MUSCLE_SENSOR_TYPES: Final[Tuple[str, ...]] = (
    SENSOR_TYPE_FORCE,
    SENSOR_TYPE_LENGTH,
    SENSOR_TYPE_VELOCITY,
)
DOF_SENSOR_TYPES: Final[Tuple[str, ...]] = (
    SENSOR_TYPE_DOF_POSITION,
    SENSOR_TYPE_DOF_VELOCITY,
)

# =============================================================================
# Layers
# =============================================================================

SENSOR_LAYER: Final[str] = "0"
PATTERN_LAYER: Final[str] = "CPG"
MOTOR_LAYER: Final[str] = "motor"

PATTERN_TYPE_TAG: Final[str] = "CPG"
MOTOR_TYPE_TAG: Final[str] = "M"

# =============================================================================
# Naming
# =============================================================================

LEFT_SUFFIX: Final[str] = "_l"
RIGHT_SUFFIX: Final[str] = "_r"
CONTRALATERAL_SUFFIX: Final[str] = "_contra"
OFFSET_PARAM_MARKER: Final[str] = "0"

# =============================================================================
# Controller Defaults
# =============================================================================

DEFAULT_SENSOR_ACTIVATION: Final[str] = "linear"
DEFAULT_INTER_ACTIVATION: Final[str] = "rectifier"
DEFAULT_MOTOR_ACTIVATION: Final[str] = "rectifier"

DEFAULT_DELAY_FACTOR: Final[float] = 1.0
DEFAULT_PATTERN_PERIOD: Final[float] = 1.0
DEFAULT_PATTERN_SIGMA: Final[float] = 0.5

# Reflex output clamp
CONTROL_VALUE_MIN: Final[float] = float("-inf")
CONTROL_VALUE_MAX: Final[float] = float("inf")

# =============================================================================
# Simulation
# =============================================================================

DEFAULT_SIMULATION_DURATION: Final[float] = 5.0  # seconds
DEFAULT_MAX_SENSOR_DELAY: Final[float] = 0.25  # seconds kept in the sensor buffer
MOMENT_ARM_EPSILON: Final[float] = 1e-4  # finite difference step (rad or m)
MOMENT_ARM_THRESHOLD: Final[float] = 1e-6

# =============================================================================
# Optimization
# =============================================================================

FAILED_EVALUATION_COST: Final[float] = float("inf")
DEFAULT_CMAES_SIGMA: Final[float] = 0.5
DEFAULT_NUM_GENERATIONS: Final[int] = 200
DEFAULT_PATIENCE: Final[int] = 50
DEFAULT_CHECKPOINT_EVERY: Final[int] = 25

# =============================================================================
# File Extensions
# =============================================================================

CHECKPOINT_EXTENSION: Final[str] = ".pkl"
CONFIG_EXTENSION: Final[str] = ".json"
PARAMS_EXTENSION: Final[str] = ".par.json"
