from dataclasses import replace

from trajectory_accuracy.config import AnalysisConfig
from trajectory_accuracy.resolver import FilterReason, FlightPairResolver, PairStatus
from trajectory_accuracy.store import InMemoryFlightRecordStore

WHITELIST = AnalysisConfig(qualifying_routes=[("SBSP", "SBRJ")])


def _resolver(predicted=(), actual=(), config=None):
    return FlightPairResolver(InMemoryFlightRecordStore(actual, predicted), config)


def test_matched_pair_reports_distances(route, track):
    resolution = _resolver([route()], [track()], WHITELIST).resolve(1)

    assert resolution.status is PairStatus.MATCHED
    assert resolution.departure_distance_nm < 0.01
    assert resolution.arrival_distance_nm < 0.01
    assert resolution.pair is not None


def test_missing_side_is_unmatched(route, track):
    resolver = _resolver([route(flight_id=1)], [track(flight_id=2)])

    assert resolver.resolve(1).status is PairStatus.UNMATCHED
    assert resolver.resolve(2).status is PairStatus.UNMATCHED
    assert resolver.lookup(1) == (resolver.store.get_predicted(1), None)


def test_reverse_route_respects_direction_setting(route, track):
    reverse = route(ids=("SBRJ", "SBSP"), start=(-22.9105, -43.1631), end=(-23.6261, -46.6564))
    actual = track(start=(-22.9105, -43.1631), end=(-23.6261, -46.6564))

    assert _resolver([reverse], [actual], WHITELIST).resolve(1).is_matched

    one_way = replace(WHITELIST, bidirectional_routes=False)
    resolution = _resolver([reverse], [actual], one_way).resolve(1)
    assert resolution.status is PairStatus.FILTERED_OUT
    assert resolution.reason is FilterReason.ROUTE


def test_route_filter_requires_airport_endpoints(route, track):
    resolver = _resolver([route(airport_endpoints=False)], [track()], WHITELIST)
    assert resolver.resolve(1).reason is FilterReason.ROUTE

    relaxed = replace(WHITELIST, require_airport_endpoints=False)
    assert _resolver([route(airport_endpoints=False)], [track()], relaxed).resolve(1).is_matched


def test_flight_level_checked_before_distance(route, track):
    actual = track()
    shifted = replace(actual.points[-1], flight_level=80.0, latitude=actual.points[-1].latitude + 0.01)
    actual = replace(actual, points=actual.points[:-1] + (shifted,))

    resolution = _resolver([route()], [actual]).resolve(1)
    assert resolution.reason is FilterReason.FLIGHT_LEVEL
    assert resolution.arrival_distance_nm is None


def test_distant_endpoint_is_filtered(route, track):
    actual = track(start=(-23.5, -46.6564))
    resolution = _resolver([route()], [actual]).resolve(1)

    assert resolution.reason is FilterReason.DISTANCE
    assert resolution.departure_distance_nm > 2.0

    no_geo = AnalysisConfig(geographic_filter=False)
    assert _resolver([route()], [actual], no_geo).resolve(1).is_matched


def test_single_point_track_is_filtered(route, track):
    resolution = _resolver([route()], [track(n=1)]).resolve(1)

    assert resolution.reason is FilterReason.TRACK_LENGTH


def test_resolve_many_statistics(route, track):
    predicted = [route(flight_id=1), route(flight_id=2), route(flight_id=3, airport_endpoints=False)]
    actual = [track(flight_id=1), track(flight_id=3), track(flight_id=4, n=1)]
    resolutions, stats = _resolver(predicted, actual, WHITELIST).resolve_many([1, 2, 3, 4])

    assert [r.status for r in resolutions] == [
        PairStatus.MATCHED,
        PairStatus.UNMATCHED,
        PairStatus.FILTERED_OUT,
        PairStatus.UNMATCHED,
    ]
    assert stats.total == 4
    assert stats.matched == 1
    assert stats.unmatched == 2
    assert stats.filtered_route == 1
    assert stats.match_rate == 50.0
    assert stats.validation_rate == 100.0
    assert stats.filtered_out == 1
