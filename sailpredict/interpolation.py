"""
Interpolation Helpers
=====================

Breakpoint search and blend functions used by the wind grid and the
polar table.

Both regularly spaced axes (grid latitude/longitude, solved by direct
division) and irregular ones (forecast frame times, polar breakpoints,
solved by binary search) go through `bracket_index`, so every lookup
shares the same clamping rule.
"""

import math
from typing import Optional, Sequence

import numpy as np

from .errors import NumericInconsistencyError


def bracket_index(value: float, count: int,
                  breakpoints: Optional[Sequence[float]] = None,
                  origin: float = 0.0, increment: float = 1.0) -> int:
    """
    Find the largest breakpoint <= value, clamped to [0, count - 2].

    Args:
        value: Coordinate to locate
        count: Number of nodes on the axis
        breakpoints: Ascending node values for an irregular axis. When
            omitted the axis is regular: node i sits at origin + i * increment.
        origin: First node of a regular axis
        increment: Node spacing of a regular axis

    Returns:
        Index of the lower node of the bracketing segment
    """
    if count < 2:
        raise NumericInconsistencyError(f"Axis needs at least 2 nodes, has {count}")
    if not math.isfinite(value):
        raise NumericInconsistencyError(f"Cannot locate non-finite value {value}")

    if breakpoints is None:
        idx = math.floor((value - origin) / increment)
    else:
        idx = int(np.searchsorted(breakpoints, value, side='right')) - 1

    return max(0, min(idx, count - 2))


def interpolate_factor(start: float, value: float, end: float) -> float:
    """Position of value between start and end (0 at start, 1 at end)."""
    if end == start:
        return 0.0
    return (value - start) / (end - start)


def linear_interpolate(factor: float, start: float, end: float) -> float:
    """Blend that returns start and end exactly at factor 0 and 1."""
    return start * (1.0 - factor) + end * factor


def smoothstep(factor: float) -> float:
    """Cubic ease 3f² - 2f³; flat at both ends so frame changes don't kink."""
    return factor * factor * (3.0 - 2.0 * factor)
