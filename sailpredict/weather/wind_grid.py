"""
Wind Grid
=========

Immutable wind forecast snapshot and its ingestion from weather source
records.

A record describes a regular lat/lon grid over a boundary rectangle and a
sequence of forecast frames, each holding U and V matrices indexed
[lon][lat]. The whole record is validated before a grid is built; any
inconsistency raises DataFormatError and nothing is returned.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from ..errors import DataFormatError

logger = logging.getLogger(__name__)

TimeValue = Union[int, float, str, datetime]

# Timestamp layouts accepted besides ISO 8601
TIME_FORMATS = ('%Y/%m/%d %H:%M:%S', '%Y/%m/%d %H:%M')


@dataclass(frozen=True)
class Boundary:
    """Grid coverage rectangle (degrees). Longitudes may exceed 180."""
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def contains(self, lat: float, lon: float) -> bool:
        """South and west edges are inclusive, north and east exclusive."""
        return (self.lat_min <= lat < self.lat_max and
                self.lon_min <= lon < self.lon_max)


@dataclass(frozen=True, eq=False)
class WindGrid:
    """
    A complete wind forecast on a regular grid.

    Samples are stored as a read-only array of shape
    (frames, n_lon, n_lat, 2) holding (u, v) in m/s.
    """
    time_series: np.ndarray            # Frame times, epoch seconds (UTC)
    origin: Tuple[float, float]        # (lat, lon) of the south-west node
    increment: Tuple[float, float]     # (dlat, dlon) degrees
    boundary: Boundary
    samples: np.ndarray
    updated_at: Optional[float] = None
    source: str = 'record'

    def __post_init__(self):
        times = np.array(self.time_series, dtype=np.float64)
        samples = np.array(self.samples, dtype=np.float64)

        if times.ndim != 1 or len(times) < 2:
            raise DataFormatError("Weather grid needs at least 2 frames")
        if np.any(np.diff(times) <= 0):
            raise DataFormatError("Frame times must be strictly increasing")
        if samples.ndim != 4 or samples.shape[3] != 2:
            raise DataFormatError(f"Samples must have shape (T, lon, lat, 2), got {samples.shape}")
        if samples.shape[0] != len(times):
            raise DataFormatError(
                f"{samples.shape[0]} sample frames for {len(times)} frame times"
            )
        if samples.shape[1] < 2 or samples.shape[2] < 2:
            raise DataFormatError("Weather grid needs at least 2x2 nodes")
        if not np.all(np.isfinite(samples)):
            raise DataFormatError("Weather grid contains non-finite samples")
        if self.increment[0] <= 0 or self.increment[1] <= 0:
            raise DataFormatError(f"Grid increments must be positive: {self.increment}")

        n_lat = _node_count(self.boundary.lat_min, self.boundary.lat_max,
                            self.increment[0], 'latitude')
        n_lon = _node_count(self.boundary.lon_min, self.boundary.lon_max,
                            self.increment[1], 'longitude')
        if samples.shape[1:3] != (n_lon, n_lat):
            raise DataFormatError(
                f"Samples cover {samples.shape[1]}x{samples.shape[2]} nodes, "
                f"boundary declares {n_lon}x{n_lat}"
            )
        if (self.origin[0], self.origin[1]) != (self.boundary.lat_min, self.boundary.lon_min):
            raise DataFormatError(f"Grid origin {self.origin} is not the boundary corner")

        times.flags.writeable = False
        samples.flags.writeable = False
        object.__setattr__(self, 'time_series', times)
        object.__setattr__(self, 'samples', samples)

    @property
    def n_lon(self) -> int:
        return self.samples.shape[1]

    @property
    def n_lat(self) -> int:
        return self.samples.shape[2]

    @property
    def n_frames(self) -> int:
        return len(self.time_series)

    @classmethod
    def from_record(cls, record: Dict[str, Any], source: str = 'record') -> 'WindGrid':
        """
        Build a grid from a weather source record.

        Args:
            record: Mapping with boundary, updated_at, lat_increment,
                lon_increment and frames [{target_time, u, v}]
            source: Label used in log messages

        Returns:
            Validated WindGrid

        Raises:
            DataFormatError: If any part of the record is malformed
        """
        try:
            bounds = record['boundary']
            boundary = Boundary(
                lat_min=_parse_float(bounds['lat_min'], 'lat_min'),
                lat_max=_parse_float(bounds['lat_max'], 'lat_max'),
                lon_min=_parse_float(bounds['lon_min'], 'lon_min'),
                lon_max=_parse_float(bounds['lon_max'], 'lon_max'),
            )
            lat_inc = _parse_float(record['lat_increment'], 'lat_increment')
            lon_inc = _parse_float(record['lon_increment'], 'lon_increment')
            frames = record['frames']
        except (KeyError, TypeError) as e:
            raise DataFormatError(f"Weather record missing field {e}") from e

        if lat_inc <= 0 or lon_inc <= 0:
            raise DataFormatError(f"Grid increments must be positive: {lat_inc}, {lon_inc}")
        if boundary.lat_max <= boundary.lat_min or boundary.lon_max <= boundary.lon_min:
            raise DataFormatError(f"Empty weather boundary: {boundary}")

        n_lat = _node_count(boundary.lat_min, boundary.lat_max, lat_inc, 'latitude')
        n_lon = _node_count(boundary.lon_min, boundary.lon_max, lon_inc, 'longitude')

        updated_at = None
        if record.get('updated_at') is not None:
            updated_at = parse_time(record['updated_at'])

        if not isinstance(frames, list) or not frames:
            raise DataFormatError("Weather record has no frames")

        times: List[float] = []
        wind_map = np.empty((len(frames), n_lon, n_lat, 2), dtype=np.float64)
        for i, frame in enumerate(frames):
            try:
                target_time = frame['target_time']
                u_raw, v_raw = frame['u'], frame['v']
            except (KeyError, TypeError) as e:
                raise DataFormatError(f"Frame {i} is missing {e}") from e

            times.append(parse_time(target_time))
            u = _parse_matrix(u_raw, f"frame {i} U")
            v = _parse_matrix(v_raw, f"frame {i} V")
            for name, matrix in (('U', u), ('V', v)):
                if matrix.shape != (n_lon, n_lat):
                    raise DataFormatError(
                        f"Frame {i} {name} has shape {matrix.shape}, "
                        f"expected ({n_lon}, {n_lat})"
                    )
            wind_map[i, :, :, 0] = u
            wind_map[i, :, :, 1] = v

        for i in range(1, len(times)):
            if times[i] <= times[i - 1]:
                raise DataFormatError(
                    f"Frame {i} target time {times[i]} does not follow {times[i - 1]}"
                )

        grid = cls(
            time_series=np.array(times),
            origin=(boundary.lat_min, boundary.lon_min),
            increment=(lat_inc, lon_inc),
            boundary=boundary,
            samples=wind_map,
            updated_at=updated_at,
            source=source,
        )
        logger.info(f"Ingested weather from {source}: {grid.n_frames} frames, "
                    f"{n_lon}x{n_lat} nodes, "
                    f"lat {boundary.lat_min:.2f}..{boundary.lat_max:.2f}, "
                    f"lon {boundary.lon_min:.2f}..{boundary.lon_max:.2f}")
        return grid


def load_weather(filepath: Union[str, Path]) -> WindGrid:
    """Load a weather source record from a JSON file."""
    filepath = Path(filepath)
    with open(filepath, 'r') as f:
        try:
            record = json.load(f)
        except json.JSONDecodeError as e:
            raise DataFormatError(f"Invalid JSON in {filepath.name}: {e}") from e
    if not isinstance(record, dict):
        raise DataFormatError(f"{filepath.name} does not contain a weather record")
    return WindGrid.from_record(record, source=filepath.name)


def parse_time(value: TimeValue) -> float:
    """
    Parse a timestamp to epoch seconds.

    Accepts epoch seconds, datetimes, ISO 8601 strings and
    'YYYY/MM/DD HH:MM:SS'. Naive times are taken as UTC.
    """
    if isinstance(value, bool):
        raise DataFormatError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise DataFormatError(f"Invalid timestamp: {value!r}")
        return float(value)
    if isinstance(value, datetime):
        return _to_epoch(value)
    if not isinstance(value, str):
        raise DataFormatError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    try:
        return _to_epoch(datetime.fromisoformat(text.replace('Z', '+00:00')))
    except ValueError:
        pass
    for fmt in TIME_FORMATS:
        try:
            return _to_epoch(datetime.strptime(text, fmt))
        except ValueError:
            continue
    raise DataFormatError(f"Unparsable timestamp: {value!r}")


def _to_epoch(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _parse_float(value: Any, name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise DataFormatError(f"Invalid {name}: {value!r}") from e
    if not math.isfinite(result):
        raise DataFormatError(f"Invalid {name}: {value!r}")
    return result


def _node_count(low: float, high: float, increment: float, axis: str) -> int:
    """Number of grid nodes spanning [low, high] at the given spacing."""
    steps = (high - low) / increment
    count = round(steps)
    if abs(steps - count) > 1e-6 * max(1.0, steps):
        raise DataFormatError(
            f"{axis} span {high - low} is not a multiple of increment {increment}"
        )
    return int(count) + 1


def _parse_matrix(raw: Any, name: str) -> np.ndarray:
    """
    Parse a [lon][lat] matrix.

    Accepts nested lists or the text encoding 'a b c; d e f; ' where rows
    are separated by semicolons and the trailing separator leaves one
    empty row.
    """
    if isinstance(raw, str):
        rows = re.split(r';\s*', raw.strip())
        if rows and rows[-1] == '':
            rows.pop()
        raw = [row.split() for row in rows]

    if not isinstance(raw, list) or not raw:
        raise DataFormatError(f"{name} is empty or not a matrix")

    width = None
    for j, row in enumerate(raw):
        if not isinstance(row, (list, tuple)):
            raise DataFormatError(f"{name} row {j} is not a list")
        if width is None:
            width = len(row)
        elif len(row) != width:
            raise DataFormatError(
                f"{name} row {j} has {len(row)} values, expected {width}"
            )

    try:
        return np.array(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise DataFormatError(f"{name} contains non-numeric values") from e
