"""
Polar Model
===========

Loads and interpolates the boat's polar performance table.
Used by the trajectory predictor for boat speed and by the curve
builders for VMG and maximum-speed summaries.

Units inside the model: wind and boat speed in m/s, angles in radians.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .errors import DataFormatError
from .interpolation import bracket_index, interpolate_factor, linear_interpolate
from .nav import MS_TO_KNOTS, deg_to_rad, knots_to_ms, speed_towards_bearing

logger = logging.getLogger(__name__)

# Built-in Pogo 1250 polar (knots, degrees), rows per TWA, columns per TWS
POGO_1250 = {
    'name': 'pogo1250',
    'speed_units': 'knots',
    'tws_breakpoints': [0, 4, 6, 8, 10, 12, 14, 16, 20, 25, 30, 35, 40, 45, 50, 55, 60],
    'twa_breakpoints_deg': [
        0, 5, 10, 15, 20, 25, 32, 36, 40, 45, 52, 60,
        70, 80, 90, 100, 110, 120, 130, 140, 150, 160, 170, 180
    ],
    'boat_speed_rows': [
        [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0.4, 0.6, 0.8, 0.9, 1, 1, 1, 1.1, 1.1, 1.1, 1.1, 0.1, 0.1, 0.1, 0, 0],
        [0, 0.8, 1.2, 1.6, 1.8, 2, 2, 2.1, 2.1, 2.2, 2.2, 2.2, 0.5, 0.2, 0.2, 0, 0],
        [0, 1.2, 1.8, 2.4, 2.7, 2.9, 3, 3.1, 3.2, 3.3, 3.3, 3.3, 1.2, 0.5, 0.3, 0, 0],
        [0, 1.4, 2.1, 2.7, 3.1, 3.4, 3.5, 3.6, 3.6, 3.7, 3.8, 3.7, 1.7, 0.7, 0.4, 0, 0],
        [0, 1.7, 2.5, 3.2, 3.7, 4, 4.1, 4.3, 4.3, 4.4, 4.5, 4.4, 2.6, 1.1, 0.4, 0, 0],
        [0, 2.8, 4.2, 5.4, 6.2, 6.7, 6.9, 7.1, 7.2, 7.4, 7.5, 7.4, 5.6, 2.2, 0.7, 0, 0],
        [0, 3.1, 4.7, 5.9, 6.7, 7, 7.2, 7.4, 7.6, 7.8, 7.9, 7.9, 6.5, 2.6, 0.8, 0, 0],
        [0, 3.5, 5.1, 6.3, 7, 7.3, 7.5, 7.7, 7.9, 8.1, 8.2, 8.3, 7.4, 2.9, 1.2, 0, 0],
        [0, 3.8, 5.6, 6.7, 7.3, 7.6, 7.8, 8, 8.2, 8.4, 8.5, 8.6, 8.2, 3, 1.3, 0, 0],
        [0, 4.2, 6, 7, 7.7, 8, 8.2, 8.3, 8.6, 8.9, 9, 9.1, 8.9, 3.2, 1.4, 0, 0],
        [0, 4.6, 6.3, 7.3, 8, 8.3, 8.5, 8.7, 9, 9.3, 9.5, 9.6, 9.6, 3.8, 1.9, 0, 0],
        [0, 4.8, 6.6, 7.5, 8.2, 8.6, 8.9, 9.1, 9.5, 9.8, 10.1, 10.4, 10.4, 4.2, 2.1, 0, 0],
        [0, 5, 6.9, 7.9, 8.3, 8.8, 9.2, 9.4, 9.9, 10.4, 10.9, 11.3, 11.3, 4.5, 2.3, 0, 0],
        [0, 5.3, 7.1, 8.1, 8.6, 8.9, 9.3, 9.7, 10.4, 11.1, 11.8, 12.5, 12.5, 5.6, 3.1, 0.6, 0.6],
        [0, 5.4, 7.1, 8.2, 8.8, 9.2, 9.5, 9.9, 10.9, 11.9, 12.8, 14.1, 14.1, 7.1, 4.2, 0.7, 0.7],
        [0, 5.3, 7, 8.1, 8.8, 9.4, 9.8, 10.3, 11.2, 12.7, 14.3, 15, 15, 8.3, 5.3, 1.5, 1.5],
        [0, 5, 6.8, 7.8, 8.6, 9.4, 10, 10.6, 11.8, 13.2, 14.9, 15.7, 15.7, 9.4, 6.3, 1.6, 1.6],
        [0, 4.5, 6.3, 7.4, 8.3, 9, 9.8, 10.6, 12.3, 14.4, 15.6, 16.6, 16.6, 10.8, 7.5, 2.5, 2.5],
        [0, 3.8, 5.6, 6.9, 7.8, 8.5, 9.2, 10, 12.2, 15, 16.3, 17.6, 17.6, 13.2, 9.7, 3.5, 2.6],
        [0, 3.2, 4.8, 6.1, 7.1, 7.9, 8.6, 9.3, 10.9, 14.4, 16.8, 18.6, 18.6, 14.9, 11.2, 3.7, 3.7],
        [0, 2.7, 4.1, 5.3, 6.4, 7.3, 8, 8.7, 10, 12.4, 15.4, 17.9, 17.9, 15.2, 11.6, 4.5, 3.6],
        [0, 2.4, 3.6, 4.8, 5.9, 6.8, 7.6, 8.2, 9.4, 11.4, 14.3, 16.6, 16.6, 15.8, 12.5, 5, 4.2],
        [0, 2.2, 3.3, 4.4, 5.5, 6.4, 7.2, 7.9, 9, 10.6, 12.8, 15.4, 15.4, 15.4, 12.3, 4.6, 3.9],
    ],
}


@dataclass(frozen=True)
class MaxEntry:
    """Fastest entry of a polar table."""
    speed: float    # Boat speed (m/s)
    ms: float       # Wind speed where it occurs (m/s)
    knots: float    # Same wind speed in knots


@dataclass(frozen=True, eq=False)
class PolarTable:
    """
    Polar table data structure.

    speed[twa_idx][tws_idx] is the boat speed in m/s. Arrays are
    read-only once the table is built.
    """
    tws: np.ndarray     # Wind speed breakpoints (m/s, ascending)
    twa: np.ndarray     # Wind angle breakpoints (radians, ascending, 0..π)
    speed: np.ndarray   # Boat speed matrix (m/s)
    name: str = 'unknown'
    max_entry: MaxEntry = field(init=False)

    def __post_init__(self):
        tws = np.array(self.tws, dtype=np.float64)
        twa = np.array(self.twa, dtype=np.float64)
        speed = np.array(self.speed, dtype=np.float64)

        for axis_name, axis in (('TWS', tws), ('TWA', twa)):
            if axis.ndim != 1 or len(axis) < 2:
                raise DataFormatError(f"Polar needs at least 2 {axis_name} breakpoints")
            if not np.all(np.isfinite(axis)):
                raise DataFormatError(f"Polar {axis_name} breakpoints must be finite")
            if np.any(np.diff(axis) <= 0):
                raise DataFormatError(f"Polar {axis_name} breakpoints must be ascending")
        if tws[0] < 0:
            raise DataFormatError(f"Negative TWS breakpoint {tws[0]}")
        if twa[0] < 0 or twa[-1] > math.pi + 1e-9:
            raise DataFormatError("Polar TWA breakpoints must lie within 0..180 degrees")
        if speed.shape != (len(twa), len(tws)):
            raise DataFormatError(
                f"Polar speed matrix has shape {speed.shape}, "
                f"expected ({len(twa)}, {len(tws)})"
            )
        if not np.all(np.isfinite(speed)) or np.any(speed < 0):
            raise DataFormatError("Polar boat speeds must be finite and non-negative")

        for array in (tws, twa, speed):
            array.flags.writeable = False
        object.__setattr__(self, 'tws', tws)
        object.__setattr__(self, 'twa', twa)
        object.__setattr__(self, 'speed', speed)

        twa_idx, tws_idx = np.unravel_index(int(np.argmax(speed)), speed.shape)
        max_tws = float(tws[tws_idx])
        object.__setattr__(self, 'max_entry', MaxEntry(
            speed=float(speed[twa_idx, tws_idx]),
            ms=max_tws,
            knots=max_tws * MS_TO_KNOTS,
        ))

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'PolarTable':
        """
        Build a table from a polar source record.

        Args:
            record: Mapping with tws_breakpoints, twa_breakpoints_deg and
                boat_speed_rows. Each may be a list or the raw text
                encoding (whitespace separated values, ';' separated
                rows). Optional 'speed_units' is 'ms' (default) or 'knots'.

        Returns:
            Validated PolarTable

        Raises:
            DataFormatError: If the record is inconsistent
        """
        try:
            tws = _parse_values(record['tws_breakpoints'], 'TWS breakpoints')
            twa_deg = _parse_values(record['twa_breakpoints_deg'], 'TWA breakpoints')
            raw_rows = record['boat_speed_rows']
        except (KeyError, TypeError) as e:
            raise DataFormatError(f"Polar record missing field {e}") from e

        units = record.get('speed_units', 'ms')
        if units not in ('ms', 'knots'):
            raise DataFormatError(f"Unknown polar speed units: {units!r}")

        if isinstance(raw_rows, str):
            raw_rows = re.split(r';\s*', raw_rows.strip())
        if not isinstance(raw_rows, list):
            raise DataFormatError("Polar boat speed rows must be a list or text")

        # Raw encodings end with a separator, leaving one empty row
        if len(raw_rows) == len(twa_deg) + 1 and not raw_rows[-1]:
            raw_rows = raw_rows[:-1]
        if len(raw_rows) != len(twa_deg):
            raise DataFormatError(
                f"Inconsistent polar: {len(raw_rows)} rows for {len(twa_deg)} TWA breakpoints"
            )

        rows = []
        for i, raw_row in enumerate(raw_rows):
            row = _parse_values(raw_row, f"polar row {i}")
            if len(row) != len(tws):
                raise DataFormatError(
                    f"Inconsistent polar row {i}: {len(row)} values for {len(tws)} TWS breakpoints"
                )
            rows.append(row)

        speed = np.array(rows, dtype=np.float64)
        tws_arr = np.array(tws, dtype=np.float64)
        if units == 'knots':
            speed = speed / MS_TO_KNOTS
            tws_arr = tws_arr / MS_TO_KNOTS

        table = cls(
            tws=tws_arr,
            twa=np.radians(np.array(twa_deg, dtype=np.float64)),
            speed=speed,
            name=str(record.get('name', 'unknown')),
        )
        logger.info(f"Loaded polar '{table.name}': {len(table.tws)} TWS x {len(table.twa)} TWA, "
                    f"max {table.max_entry.speed * MS_TO_KNOTS:.1f} kts "
                    f"at {table.max_entry.knots:.0f} kts wind")
        return table


@dataclass(frozen=True)
class CurvePoint:
    """One value of a polar curve at a wind angle."""
    twa: float      # radians
    value: float    # m/s


@dataclass
class PolarCurve:
    """Polar curve for one wind speed."""
    ms: float
    knots: float
    max_speed: CurvePoint
    max_vmg_upwind: CurvePoint
    max_vmg_downwind: CurvePoint
    samples: List[CurvePoint] = field(default_factory=list)


@dataclass
class CurveConfig:
    """Configuration for the static curve set."""
    reference_knots: List[float] = field(
        default_factory=lambda: [3, 6, 9, 12, 15, 20, 25, 30]
    )
    twa_step_deg: float = 1.0           # Sampling step for each curve
    plateau_threshold: float = 0.02     # Minimum relative change to keep a curve


class PolarModel:
    """
    Boat polar for speed predictions.

    Speed lookups are bilinear over the (TWA, TWS) table, symmetric
    between port and starboard, and never extrapolate past the measured
    range.
    """

    def __init__(self, table: PolarTable):
        self.table = table

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'PolarModel':
        return cls(PolarTable.from_record(record))

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> 'PolarModel':
        """Load polar from JSON file."""
        return cls(load_polar(filepath))

    @classmethod
    def sample(cls) -> 'PolarModel':
        """Return the built-in Pogo 1250 polar."""
        return cls.from_record(POGO_1250)

    @property
    def max_tws(self) -> float:
        """Highest wind speed in the table (m/s)."""
        return float(self.table.tws[-1])

    def speed(self, tws: float, twa: float) -> float:
        """
        Get boat speed from polar.

        Args:
            tws: True wind speed (m/s)
            twa: True wind angle (radians, either tack)

        Returns:
            Boat speed (m/s)
        """
        table = self.table
        twa = min(max(abs(twa), float(table.twa[0])), float(table.twa[-1]))
        tws = min(max(tws, float(table.tws[0])), float(table.tws[-1]))

        i = bracket_index(twa, len(table.twa), breakpoints=table.twa)
        j = bracket_index(tws, len(table.tws), breakpoints=table.tws)

        twa_factor = interpolate_factor(table.twa[i], twa, table.twa[i + 1])
        tws_factor = interpolate_factor(table.tws[j], tws, table.tws[j + 1])

        # Along TWS on both bracketing TWA rows, then across TWA
        v0 = linear_interpolate(tws_factor, table.speed[i, j], table.speed[i, j + 1])
        v1 = linear_interpolate(tws_factor, table.speed[i + 1, j], table.speed[i + 1, j + 1])
        return max(0.0, float(linear_interpolate(twa_factor, v0, v1)))

    def curve(self, knots: float, twa_step_deg: float = 1.0) -> PolarCurve:
        """
        Sample the polar at one wind speed from 0 to 180 degrees TWA.

        Args:
            knots: Wind speed (knots)
            twa_step_deg: Angle step (degrees)

        Returns:
            PolarCurve with samples and the running maxima of boat speed,
            upwind VMG and downwind VMG
        """
        if twa_step_deg <= 0:
            raise ValueError(f"TWA step must be positive, got {twa_step_deg}")

        ms = knots_to_ms(knots)
        max_speed = CurvePoint(0.0, 0.0)
        vmg_up = CurvePoint(0.0, 0.0)
        vmg_down = CurvePoint(0.0, 0.0)
        samples = []

        steps = int(math.floor(180.0 / twa_step_deg + 1e-9))
        for k in range(steps + 1):
            twa = deg_to_rad(k * twa_step_deg)
            speed = self.speed(ms, twa)
            samples.append(CurvePoint(twa, speed))

            up = speed_towards_bearing(speed, twa, 0.0)
            down = speed_towards_bearing(speed, twa, math.pi)
            if up > vmg_up.value:
                vmg_up = CurvePoint(twa, up)
            if down > vmg_down.value:
                vmg_down = CurvePoint(twa, down)
            if speed > max_speed.value:
                max_speed = CurvePoint(twa, speed)

        return PolarCurve(
            ms=ms,
            knots=knots,
            max_speed=max_speed,
            max_vmg_upwind=vmg_up,
            max_vmg_downwind=vmg_down,
            samples=samples,
        )

    def static_curves(self, config: Optional[CurveConfig] = None) -> List[PolarCurve]:
        """
        Curves for the reference wind speeds, without redundant ones.

        Once the boat stops getting faster, higher wind curves look the
        same as the previous one. A curve is kept only if its max speed
        grew by more than the threshold over the running maximum, or it
        deviates from the last kept curve by more than the threshold
        somewhere.
        """
        config = config or CurveConfig()
        kept: List[PolarCurve] = []
        running_max = 0.0

        for knots in config.reference_knots:
            curve = self.curve(knots, config.twa_step_deg)
            if not kept:
                keep = True
            else:
                grown = curve.max_speed.value - running_max > config.plateau_threshold * running_max
                keep = grown or _relative_deviation(curve, kept[-1]) > config.plateau_threshold
            running_max = max(running_max, curve.max_speed.value)

            if keep:
                kept.append(curve)
            else:
                logger.debug(f"Skipping {knots} kts polar curve, plateaued")

        return kept


def load_polar(filepath: Union[str, Path]) -> PolarTable:
    """Load a polar source record from a JSON file."""
    filepath = Path(filepath)
    with open(filepath, 'r') as f:
        try:
            record = json.load(f)
        except json.JSONDecodeError as e:
            raise DataFormatError(f"Invalid JSON in {filepath.name}: {e}") from e
    if not isinstance(record, dict):
        raise DataFormatError(f"{filepath.name} does not contain a polar record")
    return PolarTable.from_record(record)


def _relative_deviation(curve: PolarCurve, reference: PolarCurve) -> float:
    """Largest sample-wise relative difference between two curves."""
    worst = 0.0
    for sample, ref in zip(curve.samples, reference.samples):
        diff = abs(sample.value - ref.value)
        if ref.value > 0:
            worst = max(worst, diff / ref.value)
        elif diff > 0:
            return math.inf
    return worst


def _parse_values(raw: Any, name: str) -> List[float]:
    """Parse a list of numbers or a whitespace separated string."""
    if isinstance(raw, str):
        raw = raw.split()
    if not isinstance(raw, (list, tuple)):
        raise DataFormatError(f"{name} must be a list or text")
    try:
        return [float(x) for x in raw]
    except (TypeError, ValueError) as e:
        raise DataFormatError(f"{name} contains non-numeric values") from e
