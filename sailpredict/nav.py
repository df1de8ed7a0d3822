"""
Navigation Math
===============

Angle and bearing conversions shared by the wind field, the polar model
and the trajectory predictor. All angles are radians unless a name says
otherwise; bearings are clockwise from north.
"""

import math
from typing import NamedTuple, Tuple

# Knots per m/s
MS_TO_KNOTS = 1.94384449

# One nautical mile per arc minute
METERS_PER_NM = 1852.0
METERS_PER_DEGREE = METERS_PER_NM * 60.0

TWO_PI = 2.0 * math.pi


class Position(NamedTuple):
    """Geographic position in decimal degrees."""
    lat: float
    lon: float


def deg_to_rad(deg: float) -> float:
    return deg * math.pi / 180.0


def rad_to_deg(rad: float) -> float:
    return rad * 180.0 / math.pi


def ms_to_knots(ms: float) -> float:
    return ms * MS_TO_KNOTS


def knots_to_ms(knots: float) -> float:
    return knots / MS_TO_KNOTS


def normalize_bearing(angle: float) -> float:
    """Fold an angle into [0, 2π)."""
    angle = math.fmod(angle, TWO_PI)
    if angle < 0:
        angle += TWO_PI
    # fmod of a tiny negative value can round back up to 2π
    if angle >= TWO_PI:
        angle = 0.0
    return angle


def angle_difference(a: float, b: float) -> float:
    """
    Signed difference a - b folded into [-π, π).

    Args:
        a: Angle (radians)
        b: Angle (radians)

    Returns:
        Smallest signed rotation taking b onto a
    """
    return normalize_bearing(a - b + math.pi) - math.pi


def cog_twd_to_twa(cog: float, twd: float) -> float:
    """True wind angle when sailing course `cog` in wind from `twd`."""
    return angle_difference(cog, twd)


def twa_twd_to_cog(twa: float, twd: float) -> float:
    """Course that holds true wind angle `twa` in wind from `twd`."""
    return normalize_bearing(twd + twa)


def speed_towards_bearing(speed: float, angle: float, bearing: float) -> float:
    """Component of `speed` sailed at `angle` along `bearing` (VMG)."""
    return speed * math.cos(angle - bearing)


def uv_to_wind(u: float, v: float) -> Tuple[float, float]:
    """
    Convert a wind vector to direction and speed.

    Args:
        u: Eastward component (m/s)
        v: Northward component (m/s)

    Returns:
        Tuple of (TWD in radians, the direction the wind blows FROM;
        TWS in m/s)
    """
    # Bearing of the negated vector
    twd = normalize_bearing(math.atan2(-u, -v))
    return (twd, math.hypot(u, v))
