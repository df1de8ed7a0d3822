"""
Trajectory Predictor
====================

Advances a simulated boat position tick by tick under a fixed steering
policy, using the wind field and the polar model.

Position updates are equirectangular: per-tick lat/lon deltas with the
longitude step stretched by 1/cos(latitude). Boat performance drops when
the caller degrades it (tacks, gybes, sail changes) and recovers
gradually as the boat sails on.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from ..errors import DataFormatError
from ..nav import (
    METERS_PER_DEGREE,
    Position,
    cog_twd_to_twa,
    twa_twd_to_cog,
)
from ..polar import PolarModel, PolarTable
from ..weather.wind_field import WindField
from ..weather.wind_grid import WindGrid

logger = logging.getLogger(__name__)


class SteeringMode(Enum):
    """Steering policy held for the whole prediction."""
    FIXED_COURSE = "fixed_course"   # Hold compass bearing
    FIXED_TWA = "fixed_twa"         # Hold true wind angle


@dataclass
class PredictorConfig:
    """Configuration for trajectory prediction."""
    tick_seconds: float = 60.0          # Integration step (seconds)
    first_step_multiplier: float = 0.5  # Speed factor on a run's first tick
    perf_recovery_rate: float = 0.001   # Recovery per tick, scaled by tick / speed


@dataclass
class PredictionState:
    """Per-run integration state, owned by the caller."""
    position: Position
    tick_seconds: float
    move_delta: float               # Degrees per (m/s) over one tick
    perf: float = 1.0               # Performance factor (0-1)
    first_step: bool = True
    elapsed: float = 0.0            # Seconds predicted so far

    def __post_init__(self):
        if not 0.0 <= self.perf <= 1.0:
            raise ValueError(f"Performance factor must be within [0, 1], got {self.perf}")
        if self.tick_seconds <= 0:
            raise ValueError(f"Tick must be positive, got {self.tick_seconds}")

    @classmethod
    def start(cls, position: Position, tick_seconds: float = 60.0,
              perf: float = 1.0) -> 'PredictionState':
        """New state at a position with the move scale for the tick."""
        return cls(
            position=position,
            tick_seconds=tick_seconds,
            move_delta=tick_seconds / METERS_PER_DEGREE,
            perf=perf,
        )

    def degrade(self, loss: float):
        """Drop performance by `loss` (e.g. after a tack), clamped to [0, 1]."""
        self.perf = min(max(self.perf - loss, 0.0), 1.0)


class PredictedPath:
    """Ordered predicted positions. Only ever appended to."""

    def __init__(self, points: Optional[List[Position]] = None):
        self._points: List[Position] = list(points or [])

    def append(self, position: Position):
        self._points.append(position)

    @property
    def points(self) -> List[Position]:
        return list(self._points)

    @property
    def last(self) -> Optional[Position]:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Position]:
        return iter(self._points)


class TrajectoryPredictor:
    """
    Predicts a boat track for a fixed steering policy.

    Holds references to the current wind field and polar model. Updates
    replace those references wholesale; a prediction already running
    keeps using the snapshots it started with.
    """

    def __init__(self, wind_field: Optional[WindField], polar: Optional[PolarModel],
                 config: Optional[PredictorConfig] = None):
        """
        Initialize trajectory predictor.

        Args:
            wind_field: Wind field snapshot (may be set later)
            polar: Polar model snapshot (may be set later)
            config: Predictor configuration
        """
        self.wind_field = wind_field
        self.polar = polar
        self.config = config or PredictorConfig()

    def new_state(self, position: Position, perf: float = 1.0) -> PredictionState:
        """Start a run at a position with this predictor's tick."""
        return PredictionState.start(position, self.config.tick_seconds, perf)

    def update_wind_field(self, wind_field: WindField):
        self.wind_field = wind_field

    def update_polar(self, polar: PolarModel):
        self.polar = polar

    def ingest_weather(self, record: Dict[str, Any]) -> WindField:
        """
        Parse a weather record and swap it in.

        On DataFormatError the current wind field stays in place.
        """
        try:
            wind_field = WindField(WindGrid.from_record(record))
        except DataFormatError as e:
            logger.warning(f"Rejected weather update, keeping previous grid: {e}")
            raise
        self.update_wind_field(wind_field)
        return wind_field

    def ingest_polar(self, record: Dict[str, Any]) -> PolarModel:
        """
        Parse a polar record and swap it in.

        On DataFormatError the current polar stays in place.
        """
        try:
            polar = PolarModel(PolarTable.from_record(record))
        except DataFormatError as e:
            logger.warning(f"Rejected polar update, keeping previous table: {e}")
            raise
        self.update_polar(polar)
        return polar

    def predict(self, path: PredictedPath, mode: SteeringMode, value: float,
                start_time: float, end_time: float,
                state: PredictionState) -> Optional[float]:
        """
        Extend a path from start_time until end_time.

        Args:
            path: Path to append to. Its last point is the start position;
                an empty path starts from state.position.
            mode: Steering mode
            value: Course (FIXED_COURSE) or TWA (FIXED_TWA), radians
            start_time: Time at the start position (epoch seconds)
            end_time: Time to predict up to (epoch seconds)
            state: Integration state, carried over between calls

        Returns:
            Time of the last predicted point, or None if the wind ran out
            before end_time. Points appended before that stay in the path.
        """
        # One snapshot for the whole run
        wind_field = self.wind_field
        polar = self.polar
        if wind_field is None or polar is None:
            raise RuntimeError("Predictor needs both a wind field and a polar")

        tick = state.tick_seconds
        move_delta = state.move_delta
        recovery = self.config.perf_recovery_rate
        position = path.last if len(path) else state.position
        t = start_time

        while t < end_time:
            wind = wind_field.query(position, t)
            if wind is None:
                logger.debug(f"Prediction stopped at {position.lat:.4f}, {position.lon:.4f}: "
                             f"no wind at t={t:.0f}")
                return None

            if mode is SteeringMode.FIXED_COURSE:
                course = value
                twa = cog_twd_to_twa(course, wind.twd)
            else:
                twa = value
                course = twa_twd_to_cog(twa, wind.twd)

            speed = polar.speed(wind.ms, twa) * state.perf
            if state.first_step:
                speed *= self.config.first_step_multiplier
                state.first_step = False

            lon_scaling = abs(math.cos(math.radians(position.lat)))
            dlat = move_delta * speed * math.cos(course)
            dlon = move_delta * speed * math.sin(course) / lon_scaling

            position = Position(position.lat + dlat, position.lon + dlon)
            path.append(position)
            state.position = position
            t += tick
            state.elapsed += tick

            if speed == 0:
                # Recovery per distance is unbounded when not moving
                state.perf = 1.0
            else:
                state.perf = min(state.perf + recovery * tick / abs(speed), 1.0)

        return t

    def predict_legs(self, path: PredictedPath, mode: SteeringMode, value: float,
                     start_time: float, end_time: float, state: PredictionState,
                     leg_seconds: float = 3600.0) -> Iterator[float]:
        """
        Predict a long horizon as a series of shorter legs.

        Yields the time reached after each leg so the caller can stop
        between legs. Stops early when the wind runs out.
        """
        if leg_seconds <= 0:
            raise ValueError(f"Leg length must be positive, got {leg_seconds}")

        t = start_time
        while t < end_time:
            leg_end = min(t + leg_seconds, end_time)
            reached = self.predict(path, mode, value, t, leg_end, state)
            if reached is None:
                return
            t = reached
            yield t
