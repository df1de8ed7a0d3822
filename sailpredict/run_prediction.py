"""
Prediction Runner
=================

CLI entry point: predict a boat track through a weather forecast file
with a fixed course or a fixed true wind angle.
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .errors import DataFormatError
from .nav import Position, deg_to_rad
from .polar import PolarModel
from .simulation.predictor import (
    PredictedPath,
    PredictorConfig,
    SteeringMode,
    TrajectoryPredictor,
)
from .weather.wind_field import WindField
from .weather.wind_grid import load_weather, parse_time


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(levelname)s: %(message)s' if not verbose else \
                 '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Log to stderr; stdout carries the predicted track
    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Predict a boat track through a wind forecast',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hold a compass course of 225 degrees for 12 hours
  python -m sailpredict.run_prediction \\
    --weather data/wx.json --lat 47.5 --lon -4.2 --course 225 --hours 12

  # Hold 140 degrees TWA with a custom polar, starting at a given time
  python -m sailpredict.run_prediction \\
    --weather data/wx.json --polar data/polar.json \\
    --lat 47.5 --lon -4.2 --twa 140 --start 2026-01-25T06:00:00Z
"""
    )

    parser.add_argument(
        '--weather', '-w',
        type=str,
        required=True,
        help='Path to weather record JSON file'
    )
    parser.add_argument(
        '--polar', '-p',
        type=str,
        default=None,
        help='Path to polar record JSON file (default: built-in Pogo 1250)'
    )
    parser.add_argument('--lat', type=float, required=True, help='Start latitude (degrees)')
    parser.add_argument('--lon', type=float, required=True, help='Start longitude (degrees)')

    steering = parser.add_mutually_exclusive_group(required=True)
    steering.add_argument(
        '--course',
        type=float,
        help='Hold this compass course (degrees)'
    )
    steering.add_argument(
        '--twa',
        type=float,
        help='Hold this true wind angle (degrees, negative for port)'
    )

    parser.add_argument(
        '--start',
        type=str,
        default=None,
        help='Start time, ISO 8601 (default: first forecast frame)'
    )
    parser.add_argument(
        '--hours',
        type=float,
        default=24.0,
        help='Prediction horizon in hours (default: 24)'
    )
    parser.add_argument(
        '--tick',
        type=float,
        default=60.0,
        help='Integration step in seconds (default: 60)'
    )
    parser.add_argument(
        '--leg-hours',
        type=float,
        default=1.0,
        help='Progress reporting interval in hours (default: 1)'
    )
    parser.add_argument(
        '--perf',
        type=float,
        default=1.0,
        help='Initial performance factor 0-1 (default: 1.0)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )
    return parser


def format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def main(argv: Optional[List[str]] = None):
    """Main entry point for the prediction runner."""
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        wind_field = WindField(load_weather(args.weather))
        polar = PolarModel.from_json(args.polar) if args.polar else PolarModel.sample()
        start_time = parse_time(args.start) if args.start else wind_field.first_timestamp
        predictor = TrajectoryPredictor(
            wind_field, polar, PredictorConfig(tick_seconds=args.tick)
        )
        start = Position(args.lat, args.lon)
        state = predictor.new_state(start, perf=args.perf)
    except (OSError, DataFormatError, ValueError) as e:
        logger.error(f"Cannot start prediction: {e}")
        sys.exit(2)

    if args.course is not None:
        mode, value = SteeringMode.FIXED_COURSE, deg_to_rad(args.course)
        steering_str = f"course {args.course:.0f}°"
    else:
        mode, value = SteeringMode.FIXED_TWA, deg_to_rad(args.twa)
        steering_str = f"TWA {args.twa:.0f}°"

    end_time = start_time + args.hours * 3600
    logger.info(f"Predicting {args.hours:g} h from {start.lat:.4f}, {start.lon:.4f} "
                f"at {format_time(start_time)}, {steering_str}, polar '{polar.table.name}'")

    path = PredictedPath([start])
    reached = start_time
    for reached in predictor.predict_legs(path, mode, value, start_time, end_time, state,
                                          leg_seconds=args.leg_hours * 3600):
        last = path.last
        logger.info(f"  {format_time(reached)}: {last.lat:.4f}, {last.lon:.4f}, "
                    f"perf {state.perf:.2f}")

    print('time,lat,lon')
    for i, point in enumerate(path):
        print(f"{format_time(start_time + i * state.tick_seconds)},{point.lat:.6f},{point.lon:.6f}")

    if reached < end_time:
        logger.warning(f"Prediction left the weather coverage after {len(path) - 1} steps")
        sys.exit(1)

    logger.info(f"Predicted {len(path) - 1} steps to {format_time(reached)}")
    sys.exit(0)


if __name__ == '__main__':
    main()
