"""Matching of predicted routes with recorded tracks and flight qualification.

A predicted route and a recorded track form a pair when they share the same
flight-plan key. Pairs then pass an optional qualifying-route filter and an
optional geographic validation of the departure/arrival boundary points.
Every outcome is returned as a typed :class:`PairResolution`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .base import PipelineComponent
from .config import AnalysisConfig
from .models import ActualTrajectory, PredictedTrajectory
from .store import FlightRecordStore
from .units import geodesic_distance_nm, radians_to_degrees


class PairStatus(str, Enum):
    MATCHED = "Matched"
    UNMATCHED = "Unmatched"
    FILTERED_OUT = "FilteredOut"


class FilterReason(str, Enum):
    ROUTE = "route"
    TRACK_LENGTH = "track_length"
    FLIGHT_LEVEL = "flight_level"
    DISTANCE = "distance"


@dataclass
class PairResolution:
    flight_id: int
    status: PairStatus
    predicted: Optional[PredictedTrajectory] = None
    actual: Optional[ActualTrajectory] = None
    reason: Optional[FilterReason] = None
    message: str = ""
    departure_distance_nm: Optional[float] = None
    arrival_distance_nm: Optional[float] = None
    departure_flight_level: Optional[float] = None
    arrival_flight_level: Optional[float] = None

    @property
    def is_matched(self) -> bool:
        return self.status is PairStatus.MATCHED

    @property
    def pair(self) -> Optional[Tuple[PredictedTrajectory, ActualTrajectory]]:
        if self.predicted is None or self.actual is None:
            return None
        return self.predicted, self.actual

    def as_record(self) -> dict:
        return {
            "flight_id": self.flight_id,
            "status": self.status.value,
            "reason": self.reason.value if self.reason is not None else None,
            "message": self.message,
            "departure_distance_nm": self.departure_distance_nm,
            "arrival_distance_nm": self.arrival_distance_nm,
            "departure_flight_level": self.departure_flight_level,
            "arrival_flight_level": self.arrival_flight_level,
        }


@dataclass
class QualificationStats:
    """Counts of how resolved flights were matched or rejected."""

    total: int = 0
    matched: int = 0
    unmatched: int = 0
    filtered_route: int = 0
    filtered_track_length: int = 0
    filtered_flight_level: int = 0
    filtered_distance: int = 0

    @property
    def filtered_out(self) -> int:
        return self.filtered_route + self.filtered_track_length + self.filtered_flight_level + self.filtered_distance

    @property
    def match_rate(self) -> float:
        """Percentage of flights for which both sides were found."""

        return (self.total - self.unmatched) * 100.0 / self.total if self.total else 0.0

    @property
    def validation_rate(self) -> float:
        """Percentage of route-qualified pairs that passed geographic validation."""

        candidates = self.matched + self.filtered_track_length + self.filtered_flight_level + self.filtered_distance
        return self.matched * 100.0 / candidates if candidates else 0.0

    def record(self, resolution: PairResolution) -> None:
        self.total += 1
        if resolution.status is PairStatus.MATCHED:
            self.matched += 1
        elif resolution.status is PairStatus.UNMATCHED:
            self.unmatched += 1
        elif resolution.reason is FilterReason.ROUTE:
            self.filtered_route += 1
        elif resolution.reason is FilterReason.TRACK_LENGTH:
            self.filtered_track_length += 1
        elif resolution.reason is FilterReason.FLIGHT_LEVEL:
            self.filtered_flight_level += 1
        else:
            self.filtered_distance += 1

    def as_record(self) -> dict:
        return {
            "total": self.total,
            "matched": self.matched,
            "unmatched": self.unmatched,
            "filtered_route": self.filtered_route,
            "filtered_track_length": self.filtered_track_length,
            "filtered_flight_level": self.filtered_flight_level,
            "filtered_distance": self.filtered_distance,
            "match_rate": round(self.match_rate, 1),
            "validation_rate": round(self.validation_rate, 1),
        }


class FlightPairResolver(PipelineComponent):
    """Pair predicted and actual trajectories by flight-plan key and qualify them."""

    def __init__(self, store: FlightRecordStore, config: AnalysisConfig | None = None) -> None:
        super().__init__(config)
        self.store = store

    def lookup(self, flight_id: int) -> Tuple[Optional[PredictedTrajectory], Optional[ActualTrajectory]]:
        """Return both sides for ``flight_id`` without applying any filter."""

        key = int(flight_id)
        return self.store.get_predicted(key), self.store.get_actual(key)

    def qualifies_route(self, predicted: PredictedTrajectory) -> bool:
        """Return ``True`` when the route's endpoints are in the configured whitelist."""

        routes = self.config.qualifying_routes
        if routes is None:
            return True
        if len(predicted.points) < 2:
            return False
        if self.config.require_airport_endpoints and not (
            predicted.points[0].is_airport and predicted.points[-1].is_airport
        ):
            return False

        origin = (predicted.start_point_id or "").upper()
        destination = (predicted.end_point_id or "").upper()
        allowed = set(routes)
        if self.config.bidirectional_routes:
            allowed |= {(b, a) for a, b in routes}
        return (origin, destination) in allowed

    def validate_geography(self, resolution: PairResolution) -> PairResolution:
        """Check boundary flight levels and endpoint distances of a matched pair."""

        predicted, actual = resolution.predicted, resolution.actual
        first_track, last_track = actual.points[0], actual.points[-1]
        resolution.departure_flight_level = first_track.flight_level
        resolution.arrival_flight_level = last_track.flight_level

        ceiling = self.config.max_endpoint_flight_level
        if first_track.flight_level > ceiling or last_track.flight_level > ceiling:
            resolution.status = PairStatus.FILTERED_OUT
            resolution.reason = FilterReason.FLIGHT_LEVEL
            resolution.message = (
                f"Boundary flight levels {first_track.flight_level:g}/{last_track.flight_level:g} exceed FL{ceiling:g}"
            )
            return resolution

        first_route, last_route = predicted.points[0], predicted.points[-1]
        resolution.departure_distance_nm = geodesic_distance_nm(
            first_route.latitude,
            first_route.longitude,
            radians_to_degrees(first_track.latitude),
            radians_to_degrees(first_track.longitude),
        )
        resolution.arrival_distance_nm = geodesic_distance_nm(
            last_route.latitude,
            last_route.longitude,
            radians_to_degrees(last_track.latitude),
            radians_to_degrees(last_track.longitude),
        )
        threshold = self.config.max_endpoint_distance_nm
        if resolution.departure_distance_nm > threshold or resolution.arrival_distance_nm > threshold:
            resolution.status = PairStatus.FILTERED_OUT
            resolution.reason = FilterReason.DISTANCE
            resolution.message = (
                f"Endpoint distances {resolution.departure_distance_nm:.2f}/{resolution.arrival_distance_nm:.2f} NM "
                f"exceed {threshold:g} NM"
            )
        return resolution

    def resolve(self, flight_id: int) -> PairResolution:
        """Return a typed resolution for one flight; never raises for data problems."""

        predicted, actual = self.lookup(flight_id)
        resolution = PairResolution(int(flight_id), PairStatus.MATCHED, predicted, actual)
        if predicted is None or actual is None:
            resolution.status = PairStatus.UNMATCHED
            resolution.message = "Predicted flight missing" if predicted is None else "Actual flight missing"
            self.logger.debug("Flight %d unmatched: %s", flight_id, resolution.message)
            return resolution

        if not self.qualifies_route(predicted):
            resolution.status = PairStatus.FILTERED_OUT
            resolution.reason = FilterReason.ROUTE
            resolution.message = f"Route {predicted.start_point_id} -> {predicted.end_point_id} does not qualify"
            return resolution

        if len(actual.points) < 2:
            resolution.status = PairStatus.FILTERED_OUT
            resolution.reason = FilterReason.TRACK_LENGTH
            resolution.message = f"Actual track has {len(actual.points)} point(s); duration is undefined"
            return resolution

        if self.config.geographic_filter and predicted.points:
            resolution = self.validate_geography(resolution)
            if not resolution.is_matched:
                self.logger.debug("Flight %d rejected: %s", flight_id, resolution.message)
        return resolution

    def resolve_many(self, flight_ids: Iterable[int]) -> Tuple[List[PairResolution], QualificationStats]:
        resolutions: List[PairResolution] = []
        stats = QualificationStats()
        for flight_id in flight_ids:
            resolution = self.resolve(flight_id)
            stats.record(resolution)
            resolutions.append(resolution)

        self.logger.info(
            "Flight matching completed: %d matched, %d unmatched, %d filtered out of %d flights",
            stats.matched,
            stats.unmatched,
            stats.filtered_out,
            stats.total,
        )
        self.logger.info(
            "Rejection breakdown: %d by route, %d by track length, %d by flight level, %d by distance",
            stats.filtered_route,
            stats.filtered_track_length,
            stats.filtered_flight_level,
            stats.filtered_distance,
        )
        return resolutions, stats
