"""
Weather Module
==============

Wind forecast grids and position/time wind queries.
"""

from .wind_grid import Boundary, WindGrid, load_weather, parse_time
from .wind_field import Wind, WindField

__all__ = [
    'Boundary', 'WindGrid', 'load_weather', 'parse_time',
    'Wind', 'WindField',
]
