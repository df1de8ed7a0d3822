"""
Simulation Module
=================

Step integration of predicted boat tracks.
"""

from .predictor import (
    PredictedPath,
    PredictionState,
    PredictorConfig,
    SteeringMode,
    TrajectoryPredictor,
)

__all__ = [
    'PredictedPath', 'PredictionState', 'PredictorConfig',
    'SteeringMode', 'TrajectoryPredictor',
]
