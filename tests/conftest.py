"""
Shared test fixtures for sailpredict unit tests.
"""

import numpy as np
import pytest

from sailpredict.polar import PolarModel, PolarTable
from sailpredict.weather.wind_field import WindField
from sailpredict.weather.wind_grid import Boundary, WindGrid
from sailpredict.simulation.predictor import PredictorConfig, TrajectoryPredictor


# 2026-01-25 00:00:00 UTC
BASE_TIME = 1769299200.0


def make_grid(lat_min=40.0, lat_max=42.0, lon_min=-10.0, lon_max=-8.0,
              lat_inc=1.0, lon_inc=1.0, times=(BASE_TIME, BASE_TIME + 6 * 3600),
              u=0.0, v=0.0, samples=None):
    """Build a WindGrid, uniform (u, v) unless explicit samples are given."""
    n_lat = int(round((lat_max - lat_min) / lat_inc)) + 1
    n_lon = int(round((lon_max - lon_min) / lon_inc)) + 1
    if samples is None:
        samples = np.zeros((len(times), n_lon, n_lat, 2))
        samples[..., 0] = u
        samples[..., 1] = v
    return WindGrid(
        time_series=np.array(times, dtype=np.float64),
        origin=(lat_min, lon_min),
        increment=(lat_inc, lon_inc),
        boundary=Boundary(lat_min, lat_max, lon_min, lon_max),
        samples=samples,
    )


def make_weather_record(n_frames=2, u=0.0, v=-5.0):
    """Weather source record over a 3x3 node grid with nested list matrices."""
    frames = []
    for i in range(n_frames):
        frames.append({
            'target_time': f"2026-01-25T{6 * i:02d}:00:00Z",
            'u': [[u, u, u] for _ in range(3)],
            'v': [[v, v, v] for _ in range(3)],
        })
    return {
        'boundary': {'lat_min': 40.0, 'lat_max': 42.0, 'lon_min': -10.0, 'lon_max': -8.0},
        'updated_at': '2026-01-24T22:30:00Z',
        'lat_increment': 1.0,
        'lon_increment': 1.0,
        'frames': frames,
    }


def constant_polar(speed=5.0):
    """Polar giving the same boat speed at every wind speed and angle."""
    return PolarModel(PolarTable(
        tws=[0.0, 50.0],
        twa=[0.0, np.pi],
        speed=[[speed, speed], [speed, speed]],
        name='constant',
    ))


@pytest.fixture
def uniform_grid():
    """2 frames, 2x2 nodes, wind (u=0, v=-5) everywhere."""
    return make_grid(lat_min=40.0, lat_max=41.0, lon_min=-10.0, lon_max=-9.0,
                     u=0.0, v=-5.0)


@pytest.fixture
def westerly_field():
    """Constant 10 m/s westerly over 40-42N, 10-8W for six hours."""
    return WindField(make_grid(u=10.0, v=0.0))


@pytest.fixture
def weather_record():
    """Valid weather record with a 5 m/s northerly."""
    return make_weather_record()


@pytest.fixture
def simple_table():
    """3x3 polar: TWS 0/10/20 m/s, TWA 0/90/180 degrees."""
    return PolarTable(
        tws=[0.0, 10.0, 20.0],
        twa=np.radians([0.0, 90.0, 180.0]),
        speed=[
            [0.0, 2.0, 4.0],
            [0.0, 6.0, 10.0],
            [0.0, 4.0, 8.0],
        ],
        name='simple',
    )


@pytest.fixture
def simple_polar(simple_table):
    return PolarModel(simple_table)


@pytest.fixture
def polar():
    """Pogo 1250 polar for testing."""
    return PolarModel.sample()


@pytest.fixture
def flat_polar():
    """Constant 5 m/s boat speed."""
    return constant_polar(5.0)


@pytest.fixture
def predictor(westerly_field, flat_polar):
    """Predictor with a 60 s tick and no first-step slowdown."""
    return TrajectoryPredictor(
        westerly_field, flat_polar,
        PredictorConfig(tick_seconds=60.0, first_step_multiplier=1.0),
    )
