"""Position simulation seam used by the trajectory resampler.

The resampler only relies on the :class:`PositionSimulator` protocol. A
simulator session is stateful (it keeps a clock) and must be created per
flight; the auxiliary cache lives in a :class:`SimulationContext` that is
constructed fresh for every flight and passed explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import pandas as pd

from .units import WGS84, meters_to_flight_level, to_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KinematicState:
    latitude: float
    longitude: float
    flight_level: float
    speed: float


@dataclass(frozen=True)
class Segment:
    """Directed leg between two consecutive route points on the normalized timeline."""

    index: int
    start_id: str
    end_id: str
    start_lat: float
    start_lon: float
    end_lat: float
    end_lon: float
    start_altitude_m: float
    end_altitude_m: float
    aet_start: float
    aet_end: float
    start_speed: Optional[float] = None
    end_speed: Optional[float] = None

    def contains(self, sim_time: float) -> bool:
        return self.aet_start <= sim_time <= self.aet_end

    def ratio(self, sim_time: float) -> float:
        """Fractional position of ``sim_time`` in the interval, 0 at the start and 1 at the end."""

        span = self.aet_end - self.aet_start
        if span <= 0:
            return 0.0
        return (sim_time - self.aet_start) / span


@dataclass(frozen=True)
class FlightPlan:
    flight_id: int
    segments: Tuple[Segment, ...]
    departure_time: pd.Timestamp
    session_start: pd.Timestamp
    callsign: Optional[str] = None

    @property
    def plan_start(self) -> float:
        return self.segments[0].aet_start

    @property
    def plan_end(self) -> float:
        return self.segments[-1].aet_end

    @property
    def plan_duration(self) -> float:
        return self.plan_end - self.plan_start

    def segment_at(self, sim_time: float) -> Optional[Segment]:
        for segment in self.segments:
            if segment.contains(sim_time):
                return segment
        return None


@dataclass
class SimulationContext:
    """Per-flight auxiliary state handed to the simulator on every call."""

    flight_id: int
    aux_state: Dict[str, Any] = field(default_factory=dict)


class PositionSimulator(Protocol):
    def set_current_time(self, t: pd.Timestamp) -> None:
        ...

    def simulate(self, flight_plan: FlightPlan, aux_state: Dict[str, Any]) -> Optional[KinematicState]:
        ...


SimulatorFactory = Callable[[pd.Timestamp], PositionSimulator]


class GeodesicRouteSimulator:
    """Deterministic simulator that flies each segment along its WGS84 geodesic.

    Altitude and speed vary linearly across a segment. Requests outside the
    flight plan, or made before the clock is set, return ``None`` so the
    caller falls back to its own interpolation.
    """

    def __init__(self, session_start: pd.Timestamp) -> None:
        self.session_start: pd.Timestamp = to_utc(session_start)
        self.current_time: Optional[pd.Timestamp] = None

    def set_current_time(self, t: pd.Timestamp) -> None:
        self.current_time = to_utc(t)

    def _segment_geometry(self, segment: Segment, aux_state: Dict[str, Any]) -> Tuple[float, float]:
        cache: Dict[int, Tuple[float, float]] = aux_state.setdefault("segment_geometry", {})
        if segment.index not in cache:
            azimuth, _, length = WGS84.inv(segment.start_lon, segment.start_lat, segment.end_lon, segment.end_lat)
            cache[segment.index] = (float(azimuth), float(length))
        return cache[segment.index]

    def simulate(self, flight_plan: FlightPlan, aux_state: Dict[str, Any]) -> Optional[KinematicState]:
        if self.current_time is None or self.current_time < self.session_start:
            return None

        sim_time = (self.current_time - flight_plan.departure_time).total_seconds()
        segment = flight_plan.segment_at(sim_time)
        if segment is None:
            logger.debug("Time %.1fs outside flight plan %d", sim_time, flight_plan.flight_id)
            return None

        ratio = segment.ratio(sim_time)
        azimuth, length = self._segment_geometry(segment, aux_state)
        lon, lat, _ = WGS84.fwd(segment.start_lon, segment.start_lat, azimuth, length * ratio)
        altitude_m = segment.start_altitude_m + ratio * (segment.end_altitude_m - segment.start_altitude_m)

        duration = segment.aet_end - segment.aet_start
        speed = length / duration if duration > 0 else float(segment.start_speed or 0.0)
        return KinematicState(
            latitude=float(lat),
            longitude=float(lon),
            flight_level=meters_to_flight_level(altitude_m),
            speed=float(speed),
        )
