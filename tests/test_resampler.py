from dataclasses import replace

import pytest

from trajectory_accuracy.config import AnalysisConfig
from trajectory_accuracy.exceptions import FlightTimeout
from trajectory_accuracy.models import DensificationStatus, InterpolationMethod, RoutePoint
from trajectory_accuracy.resampler import TrajectoryResampler
from trajectory_accuracy.simulator import GeodesicRouteSimulator


def test_densifies_to_track_length_and_keeps_airports(route, track):
    predicted = route(n=10)
    actual = track(n=100)
    result = TrajectoryResampler().densify(predicted, actual)

    assert result.outcome.status is DensificationStatus.SUCCESS
    points = result.trajectory.points
    assert len(points) == 100
    assert sum(p.interpolated for p in points) == 98
    for produced, original in ((points[0], predicted.points[0]), (points[-1], predicted.points[-1])):
        assert produced.latitude == original.latitude
        assert produced.longitude == original.longitude
        assert produced.waypoint_id == original.waypoint_id
        assert not produced.interpolated
        assert produced.interpolation_method is InterpolationMethod.NONE
    assert [p.sequence for p in points] == list(range(100))


def test_success_counters_add_up(route, track):
    result = TrajectoryResampler(simulator_factory=GeodesicRouteSimulator).densify(route(n=10), track(n=100))
    outcome = result.outcome

    assert outcome.is_success
    assert outcome.output_count == outcome.target_count == 100
    assert outcome.original_count == 10
    assert outcome.preserved_count == 2
    assert outcome.simulated_count == 98
    assert outcome.simulated_count + outcome.linear_count + outcome.preserved_count == outcome.output_count
    assert outcome.simulation_success_rate == pytest.approx(100.0)


def test_no_action_needed_returns_input_object(route, track):
    predicted = route(n=10)
    result = TrajectoryResampler().densify(predicted, track(n=5))

    assert result.outcome.status is DensificationStatus.NO_ACTION_NEEDED
    assert result.trajectory is predicted


def test_single_point_route_fails_validation(route, track):
    result = TrajectoryResampler().densify(route(n=1), track(n=50))

    assert result.outcome.status is DensificationStatus.VALIDATION_FAILED
    assert result.trajectory is None


def test_missing_side_is_not_found(track):
    result = TrajectoryResampler().densify(None, track(n=50))

    assert result.outcome.status is DensificationStatus.NOT_FOUND
    assert result.trajectory is None


def test_zero_duration_track_fails_validation(route, track):
    result = TrajectoryResampler().densify(route(n=3), track(n=20, duration_min=0.0))

    assert result.outcome.status is DensificationStatus.VALIDATION_FAILED


def test_simulator_failures_fall_back_to_linear(route, track, simulators):
    for kind in ("raising", "empty"):
        result = TrajectoryResampler(simulator_factory=simulators[kind]).densify(route(n=10), track(n=60))
        assert result.outcome.is_success
        assert result.outcome.simulated_count == 0
        assert result.outcome.linear_count == 58
        methods = {p.interpolation_method for p in result.trajectory.points[1:-1]}
        assert methods == {InterpolationMethod.LINEAR}


def test_factory_error_still_densifies_linearly(route, track):
    def broken_factory(session_start):
        raise ConnectionError("no engine")

    result = TrajectoryResampler(simulator_factory=broken_factory).densify(route(n=10), track(n=40))

    assert result.outcome.is_success
    assert result.outcome.linear_count == 38


def test_null_coordinate_gap_without_simulator(route, track):
    predicted = route(n=10)
    points = list(predicted.points)
    points[5] = replace(points[5], latitude=0.0, longitude=0.0)
    predicted = replace(predicted, points=tuple(points))

    result = TrajectoryResampler().densify(predicted, track(n=100))

    assert result.outcome.status is DensificationStatus.SIMULATION_UNAVAILABLE
    assert result.trajectory is None
    assert 10 <= result.outcome.output_count < 100


def test_null_coordinate_gap_with_simulator_fails_validation(route, track):
    predicted = route(n=10)
    points = list(predicted.points)
    points[5] = replace(points[5], latitude=0.0, longitude=0.0)
    predicted = replace(predicted, points=tuple(points))

    result = TrajectoryResampler(simulator_factory=GeodesicRouteSimulator).densify(predicted, track(n=100))

    assert result.outcome.status is DensificationStatus.VALIDATION_FAILED
    assert "incomplete" in result.outcome.message


def test_fewer_points_than_original_fails(route, track):
    predicted = route(n=10)
    points = list(predicted.points)
    for i in range(2, 9):
        points[i] = replace(points[i], latitude=0.0, longitude=0.0)
    predicted = replace(predicted, points=tuple(points))

    result = TrajectoryResampler().densify(predicted, track(n=12))

    assert result.outcome.status is DensificationStatus.SIMULATION_UNAVAILABLE
    assert result.outcome.output_count == 3
    assert result.outcome.output_count < result.outcome.original_count
    assert "less than original" in result.outcome.message
    assert result.trajectory is None


def test_inputs_are_not_mutated(route, track):
    predicted = route(n=10)
    actual = track(n=100)
    before = predicted.points

    TrajectoryResampler().densify(predicted, actual)

    assert predicted.points is before
    assert len(predicted.points) == 10
    assert len(actual.points) == 100


def test_non_airport_endpoints_are_generated(route, track):
    result = TrajectoryResampler().densify(route(n=10, airport_endpoints=False), track(n=30))

    assert result.outcome.is_success
    assert result.outcome.preserved_count == 0
    assert all(p.interpolated for p in result.trajectory.points)


def test_elapsed_minutes_are_forced_increasing():
    points = [
        RoutePoint(0.0, 1.0, eet_minutes=None),
        RoutePoint(0.0, 2.0, eet_minutes=0.0),
        RoutePoint(0.0, 3.0, eet_minutes=10.0),
        RoutePoint(0.0, 4.0, eet_minutes=5.0),
    ]
    assert TrajectoryResampler().elapsed_minutes(points) == [0.0, 5.0, 10.0, 15.0]


def test_segments_are_rescaled_to_actual_duration(route):
    resampler = TrajectoryResampler(AnalysisConfig(default_hop_minutes=5.0))
    segments = resampler.build_segments(route(n=4, eet_step=10.0), actual_duration_s=5400.0)

    assert len(segments) == 3
    assert segments[0].aet_start == 0.0
    assert segments[-1].aet_end == pytest.approx(5400.0)
    assert segments[1].aet_start == pytest.approx(1800.0)


def test_timeout_raises(route, track, simulators):
    resampler = TrajectoryResampler(simulator_factory=simulators["slow"])
    with pytest.raises(FlightTimeout):
        resampler.densify(route(n=10), track(n=100), timeout_s=0.05)
