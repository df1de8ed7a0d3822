"""
Wind Field
==========

Answers "wind at (position, time)" queries against one WindGrid
snapshot.

Latitude and longitude are interpolated linearly; forecast frames are
blended with a smoothstep so the wind doesn't visibly jump when the
prediction crosses from one frame interval into the next.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import OutOfRangeQuery
from ..interpolation import bracket_index, interpolate_factor, linear_interpolate, smoothstep
from ..nav import MS_TO_KNOTS, Position, uv_to_wind
from .wind_grid import WindGrid


@dataclass(frozen=True)
class Wind:
    """Interpolated wind at a point."""
    twd: float      # True wind direction (radians, blowing FROM)
    ms: float       # True wind speed (m/s)

    @property
    def knots(self) -> float:
        """Wind speed in knots."""
        return self.ms * MS_TO_KNOTS


class WindField:
    """
    Trilinear wind interpolation over a WindGrid.

    The grid is held by reference and never modified. To pick up a new
    forecast, build a new WindField rather than changing this one.
    """

    def __init__(self, grid: WindGrid):
        """
        Initialize wind field.

        Args:
            grid: Validated wind grid snapshot
        """
        self.grid = grid

    @property
    def first_timestamp(self) -> float:
        return float(self.grid.time_series[0])

    @property
    def last_timestamp(self) -> float:
        return float(self.grid.time_series[-1])

    def bound_time(self, timestamp: float) -> float:
        """Clamp a timestamp into the forecast time range."""
        return min(max(timestamp, self.first_timestamp), self.last_timestamp)

    def covers(self, position: Position, timestamp: float) -> bool:
        """Whether a query at position/time would return wind."""
        lat, lon = self._dewrap(position)
        return (self.grid.boundary.contains(lat, lon) and
                self.first_timestamp <= timestamp <= self.last_timestamp)

    def query(self, position: Position, timestamp: float) -> Optional[Wind]:
        """
        Get wind at a position and time.

        Args:
            position: Query position
            timestamp: Query time (epoch seconds)

        Returns:
            Wind, or None when outside the grid coverage
        """
        uv = self.uv(position, timestamp)
        if uv is None:
            return None
        twd, ms = uv_to_wind(uv[0], uv[1])
        return Wind(twd=twd, ms=ms)

    def require(self, position: Position, timestamp: float) -> Wind:
        """Like query() but raise OutOfRangeQuery on a coverage gap."""
        wind = self.query(position, timestamp)
        if wind is None:
            raise OutOfRangeQuery(
                f"No wind at {position.lat:.4f}, {position.lon:.4f} "
                f"t={timestamp:.0f} (grid {self.first_timestamp:.0f}..{self.last_timestamp:.0f})"
            )
        return wind

    def uv(self, position: Position, timestamp: float) -> Optional[Tuple[float, float]]:
        """
        Interpolated wind vector at a position and time.

        Returns:
            Tuple of (u, v) in m/s, or None when outside the grid coverage
        """
        grid = self.grid
        lat, lon = self._dewrap(position)

        if not grid.boundary.contains(lat, lon):
            return None
        if timestamp < self.first_timestamp or timestamp > self.last_timestamp:
            return None

        lat0, lon0 = grid.origin
        dlat, dlon = grid.increment
        lat_idx = bracket_index(lat, grid.n_lat, origin=lat0, increment=dlat)
        lon_idx = bracket_index(lon, grid.n_lon, origin=lon0, increment=dlon)
        time_idx = bracket_index(timestamp, grid.n_frames, breakpoints=grid.time_series)

        samples = grid.samples

        # Latitude within each (time edge, lon edge) corner
        lat_factor = interpolate_factor(lat0 + lat_idx * dlat, lat,
                                        lat0 + (lat_idx + 1) * dlat)
        lat_res = [[None, None], [None, None]]
        for t in (0, 1):
            for x in (0, 1):
                column = samples[time_idx + t, lon_idx + x]
                south = column[lat_idx]
                north = column[lat_idx + 1]
                lat_res[t][x] = (
                    linear_interpolate(lat_factor, south[0], north[0]),
                    linear_interpolate(lat_factor, south[1], north[1]),
                )

        # Longitude
        lon_factor = interpolate_factor(lon0 + lon_idx * dlon, lon,
                                        lon0 + (lon_idx + 1) * dlon)
        lon_res = []
        for t in (0, 1):
            west, east = lat_res[t]
            lon_res.append((
                linear_interpolate(lon_factor, west[0], east[0]),
                linear_interpolate(lon_factor, west[1], east[1]),
            ))

        # Time
        time_factor = smoothstep(interpolate_factor(
            grid.time_series[time_idx], timestamp, grid.time_series[time_idx + 1]
        ))
        start, end = lon_res
        return (
            float(linear_interpolate(time_factor, start[0], end[0])),
            float(linear_interpolate(time_factor, start[1], end[1])),
        )

    def _dewrap(self, position: Position) -> Tuple[float, float]:
        """Shift longitude into the grid's unwrapped antimeridian range."""
        lon = position.lon
        if lon < self.grid.origin[1]:
            lon += 360.0
        return (position.lat, lon)
