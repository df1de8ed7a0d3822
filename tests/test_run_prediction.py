"""
Tests for the prediction runner CLI.
"""

import json

import pytest

from sailpredict.polar import POGO_1250
from sailpredict.run_prediction import build_parser, format_time, main

from conftest import BASE_TIME, make_weather_record


@pytest.fixture
def weather_file(tmp_path):
    path = tmp_path / 'wx.json'
    path.write_text(json.dumps(make_weather_record()))
    return path


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(['-w', 'wx.json', '--lat', '41', '--lon', '-9',
                                          '--course', '90'])
        assert args.hours == 24.0
        assert args.tick == 60.0
        assert args.polar is None
        assert args.twa is None

    def test_steering_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['-w', 'wx.json', '--lat', '41', '--lon', '-9'])

    def test_steering_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['-w', 'wx.json', '--lat', '41', '--lon', '-9',
                                       '--course', '90', '--twa', '90'])


class TestMain:
    """Tests for complete runs."""

    def test_completed_run(self, weather_file, capsys):
        code = run(['-w', str(weather_file), '--lat', '41', '--lon', '-9.5',
                    '--course', '90', '--hours', '1'])

        lines = capsys.readouterr().out.strip().splitlines()
        assert code == 0
        assert lines[0] == 'time,lat,lon'
        assert len(lines) == 62
        assert lines[1].startswith('2026-01-25T00:00:00Z,41.000000,-9.500000')
        assert lines[-1].startswith('2026-01-25T01:00:00Z,')

        last_lon = float(lines[-1].split(',')[2])
        assert last_lon > -9.5

    def test_fixed_twa_run(self, weather_file, capsys):
        """TWA -90° in a northerly heads west."""
        code = run(['-w', str(weather_file), '--lat', '41', '--lon', '-8.5',
                    '--twa', '-90', '--hours', '0.5'])

        lines = capsys.readouterr().out.strip().splitlines()
        assert code == 0
        assert float(lines[-1].split(',')[2]) < -8.5

    def test_custom_polar_and_start(self, weather_file, tmp_path, capsys):
        polar_path = tmp_path / 'polar.json'
        polar_path.write_text(json.dumps(POGO_1250))

        code = run(['-w', str(weather_file), '-p', str(polar_path),
                    '--lat', '41', '--lon', '-9.5', '--course', '90',
                    '--start', '2026-01-25T03:00:00Z', '--hours', '0.5'])

        lines = capsys.readouterr().out.strip().splitlines()
        assert code == 0
        assert lines[1].startswith('2026-01-25T03:00:00Z,')

    def test_left_coverage(self, weather_file, capsys):
        """Forecast ends after 6 hours, so a 12 hour run stops short."""
        code = run(['-w', str(weather_file), '--lat', '41', '--lon', '-9.9',
                    '--course', '90', '--hours', '12'])

        lines = capsys.readouterr().out.strip().splitlines()
        assert code == 1
        assert lines[0] == 'time,lat,lon'
        assert len(lines) > 2

    def test_missing_weather_file(self, tmp_path):
        code = run(['-w', str(tmp_path / 'missing.json'), '--lat', '41', '--lon', '-9',
                    '--course', '90'])
        assert code == 2

    def test_malformed_weather(self, tmp_path):
        path = tmp_path / 'wx.json'
        path.write_text(json.dumps({'frames': []}))
        code = run(['-w', str(path), '--lat', '41', '--lon', '-9', '--course', '90'])
        assert code == 2

    def test_invalid_perf(self, weather_file):
        code = run(['-w', str(weather_file), '--lat', '41', '--lon', '-9',
                    '--course', '90', '--perf', '1.5'])
        assert code == 2

    def test_bad_start_time(self, weather_file):
        code = run(['-w', str(weather_file), '--lat', '41', '--lon', '-9',
                    '--course', '90', '--start', 'dawn'])
        assert code == 2


def test_format_time():
    assert format_time(BASE_TIME + 90) == '2026-01-25T00:01:30Z'
