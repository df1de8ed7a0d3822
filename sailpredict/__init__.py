"""
sailpredict
===========

Boat trajectory prediction for sailing route planning.

Components:
- weather: wind grid ingestion and trilinear wind interpolation
- polar: boat polar table, speed lookup and polar curves
- simulation: fixed-course / fixed-TWA trajectory predictor
- run_prediction: CLI entry point

Usage:
    python -m sailpredict.run_prediction --help
"""

from .errors import DataFormatError, NumericInconsistencyError, OutOfRangeQuery
from .nav import Position
from .polar import CurveConfig, PolarCurve, PolarModel, PolarTable
from .weather import Wind, WindField, WindGrid
from .simulation import (
    PredictedPath,
    PredictionState,
    PredictorConfig,
    SteeringMode,
    TrajectoryPredictor,
)

__all__ = [
    'DataFormatError', 'NumericInconsistencyError', 'OutOfRangeQuery',
    'Position',
    'CurveConfig', 'PolarCurve', 'PolarModel', 'PolarTable',
    'Wind', 'WindField', 'WindGrid',
    'PredictedPath', 'PredictionState', 'PredictorConfig',
    'SteeringMode', 'TrajectoryPredictor',
]
