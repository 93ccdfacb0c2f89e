# src/spicesim_core/sweep/values.py
"""
Generators for sweep value lists.

A sweep can be given as an explicit list, as start/stop/step, or as a number
of points between start and stop on a linear or logarithmic scale.
"""
import logging
import math
from typing import List

import numpy as np

from ..constants import DEFAULT_SWEEP_POINTS, STEP_INCLUSION_TOLERANCE

logger = logging.getLogger(__name__)

SWEEP_SCALES = ("linear", "log", "decade")


def step_values(start: float, stop: float, step: float) -> List[float]:
    """
    Values from `start` to `stop` inclusive in increments of `step`.

    The stop value is kept when floating-point error leaves it within a small
    fraction of a step of the last increment. A negative step sweeps downwards.

    Raises:
        ValueError: `step` is zero, or points away from `stop`.
    """
    if step == 0:
        raise ValueError("Sweep step cannot be zero.")
    span = (stop - start) / step
    if span < 0:
        raise ValueError(f"A step of {step} never reaches stop ({stop}) from start ({start}).")
    count = int(math.floor(span + STEP_INCLUSION_TOLERANCE)) + 1
    return [start + i * step for i in range(count)]


def generate_sweep_values(
    start: float,
    stop: float,
    points: int = DEFAULT_SWEEP_POINTS,
    scale: str = "linear",
) -> List[float]:
    """
    `points` values from `start` to `stop` inclusive.

    Args:
        start: First value.
        stop: Last value; must not be below `start`.
        points: Total number of values, at least 2.
        scale: 'linear' for even spacing, 'log' or 'decade' for even spacing
               of the base-10 logarithm.

    Raises:
        ValueError: On an invalid range, point count or scale.
    """
    if points < 2:
        raise ValueError(
            f"A parameter sweep needs at least 2 points; {points} point(s) were requested."
        )
    if start > stop:
        raise ValueError(f"Start value ({start}) must be less than or equal to stop value ({stop}).")
    if start == stop and points > 2:
        raise ValueError(
            f"Start equals stop ({start}) but {points} points were requested. For a single value, use points=2."
        )

    scale = scale.lower()
    if scale == "linear":
        values = np.linspace(start, stop, points)
    elif scale in ("log", "decade"):
        if start <= 0 or stop <= 0:
            raise ValueError(
                f"Logarithmic scale requires positive start and stop values; got start={start}, stop={stop}."
            )
        if start >= stop:
            raise ValueError(f"For logarithmic scale, start ({start}) must be less than stop ({stop}).")
        values = np.geomspace(start, stop, points)
    else:
        raise ValueError(f"Unknown sweep scale '{scale}'. Supported scales: {', '.join(SWEEP_SCALES)}.")

    logger.debug(f"Generated {points} {scale} sweep values from {start} to {stop}.")
    return [float(v) for v in values]
