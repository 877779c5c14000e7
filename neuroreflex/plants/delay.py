"""Fixed-rate history of sensor channels, queried at a delay."""

from __future__ import annotations

import math
from typing import Dict, Sequence

import numpy as np

from ..core.types import SensorRef


class DelayedSensorBuffer:
    """
    Ring buffer of sensor samples recorded once per simulation step.

    Values between two samples are linearly interpolated. Until the history is
    full, delays reaching past the oldest recorded sample return that sample.
    Delays longer than ``max_delay`` are rejected.

    Args:
        channels: Sensor channels, in the order of the recorded value vectors.
        max_delay: Longest delay that must be answered exactly (seconds).
        timestep: Interval between two samples (seconds).
    """

    def __init__(self, channels: Sequence[SensorRef], max_delay: float, timestep: float):
        if timestep <= 0.0:
            raise ValueError(f"timestep must be positive, got {timestep}")
        self.timestep = timestep
        self.max_delay = max_delay
        self.channels: Dict[SensorRef, int] = {c: i for i, c in enumerate(channels)}
        self.capacity = int(math.ceil(max_delay / timestep)) + 2
        self._values = np.zeros((self.capacity, len(self.channels)))
        self._head = -1
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def clear(self) -> None:
        self._head = -1
        self._count = 0

    def add(self, values: np.ndarray) -> None:
        """Record the newest sample of every channel."""
        self._head = (self._head + 1) % self.capacity
        self._values[self._head] = values
        self._count = min(self._count + 1, self.capacity)

    def _sample(self, channel: int, steps_ago: int) -> float:
        steps_ago = min(steps_ago, self._count - 1)
        return float(self._values[(self._head - steps_ago) % self.capacity, channel])

    def get(self, sensor: SensorRef, delay: float) -> float:
        try:
            channel = self.channels[sensor]
        except KeyError:
            raise KeyError(f"Unknown sensor channel: {sensor}") from None
        if self._count == 0:
            raise RuntimeError("No sensor samples recorded yet")
        if delay > self.max_delay + 1e-9:
            raise ValueError(f"Delay {delay}s exceeds the buffered history of {self.max_delay}s")

        steps = max(delay, 0.0) / self.timestep
        k = int(math.floor(steps))
        frac = steps - k
        value = self._sample(channel, k)
        if frac > 0.0:
            value += frac * (self._sample(channel, k + 1) - value)
        return value
