import math
from dataclasses import replace

import pytest

from trajectory_accuracy.accuracy import AccuracyAnalyzer


def test_identical_positions_have_zero_error(track, mirror):
    actual = track(n=50)
    result = AccuracyAnalyzer().analyze_flight(mirror(actual), actual)

    assert result.point_count == 50
    assert result.horizontal_mse == pytest.approx(0.0, abs=1e-12)
    assert result.vertical_mse == pytest.approx(0.0, abs=1e-9)
    assert result.horizontal_rmse == pytest.approx(0.0, abs=1e-6)


def test_rmse_is_square_root_of_mse(track, mirror):
    actual = track(n=20)
    result = AccuracyAnalyzer().analyze_flight(mirror(actual, altitude_offset_m=100.0), actual)

    assert result.vertical_mse == pytest.approx(10000.0)
    assert result.vertical_rmse == pytest.approx(math.sqrt(result.vertical_mse))
    assert result.vertical_max == pytest.approx(100.0)
    assert result.vertical_mean == pytest.approx(100.0)


def test_interpolated_points_use_level(track, mirror):
    actual = track(n=5)
    predicted = mirror(actual)
    points = [replace(p, altitude_m=0.0, level_m=p.altitude_m, interpolated=True) for p in predicted.points]
    result = AccuracyAnalyzer().analyze_flight(replace(predicted, points=tuple(points)), actual)

    assert result.vertical_mse == pytest.approx(0.0, abs=1e-9)


def test_unequal_counts_are_skipped(route, track):
    analyzer = AccuracyAnalyzer()
    assert analyzer.analyze_flight(route(n=10), track(n=100)) is None

    report = analyzer.analyze([(route(n=10), track(n=100))])
    assert report.qualified_count == 1
    assert report.skipped_unequal == 1
    assert report.analyzed_count == 0
    assert report.horizontal_rmse == 0.0


def test_aggregate_is_pooled_over_points(track, mirror):
    short = track(flight_id=1, n=2)
    long = track(flight_id=2, n=8)
    report = AccuracyAnalyzer().analyze(
        [
            (mirror(short, altitude_offset_m=10.0), short),
            (mirror(long, altitude_offset_m=20.0), long),
        ]
    )

    assert report.analyzed_count == 2
    assert report.total_points == 10
    assert report.vertical_mse == pytest.approx((2 * 100.0 + 8 * 400.0) / 10)
    assert report.vertical_rmse == pytest.approx(math.sqrt(340.0))
    assert report.rmse_range("vertical_rmse") == (pytest.approx(10.0), pytest.approx(20.0))
    assert len(report.to_frame()) == 2
    assert report.summary()["average_points_per_flight"] == 5.0
