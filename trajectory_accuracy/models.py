"""Shared data types for predicted routes, recorded tracks and densification outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import pandas as pd

from .units import utc_from_millis

AERODROME = "AERODROME"
FIX = "FIX"
INTERPOLATED = "INTERPOLATED"


class InterpolationMethod(str, Enum):
    NONE = "none"
    SIMULATED = "simulated"
    LINEAR = "linear"


class DensificationStatus(str, Enum):
    NOT_FOUND = "NotFound"
    NO_ACTION_NEEDED = "NoActionNeeded"
    SUCCESS = "Success"
    VALIDATION_FAILED = "ValidationFailed"
    SIMULATION_UNAVAILABLE = "SimulationUnavailable"


@dataclass(frozen=True)
class RoutePoint:
    """A waypoint of a predicted route, or a point generated between waypoints.

    Coordinates are in degrees and altitudes in meters. ``level_m`` is the
    flight-level-equivalent altitude filled in by the planner or by the
    resampler for generated points.
    """

    latitude: float
    longitude: float
    altitude_m: Optional[float] = None
    level_m: Optional[float] = None
    eet_minutes: Optional[float] = None
    ground_speed: Optional[float] = None
    waypoint_id: Optional[str] = None
    waypoint_type: Optional[str] = None
    sequence: int = 0
    interpolated: bool = False
    interpolation_method: InterpolationMethod = InterpolationMethod.NONE

    @property
    def is_airport(self) -> bool:
        return (self.waypoint_type or "").upper() == AERODROME

    @property
    def has_null_coordinates(self) -> bool:
        return self.latitude == 0.0 and self.longitude == 0.0

    def altitude_meters(self) -> float:
        """Return the altitude used for vertical comparisons."""

        if self.interpolated and self.level_m is not None:
            return float(self.level_m)
        if self.altitude_m is not None:
            return float(self.altitude_m)
        if self.level_m is not None:
            return float(self.level_m)
        return 0.0


@dataclass(frozen=True)
class TrackingPoint:
    """A recorded surveillance position. Coordinates are in radians."""

    latitude: float
    longitude: float
    flight_level: float
    timestamp_ms: int
    sequence: int = 0

    @property
    def time(self) -> pd.Timestamp:
        return utc_from_millis(self.timestamp_ms)


@dataclass(frozen=True)
class PredictedTrajectory:
    flight_id: int
    points: Tuple[RoutePoint, ...]
    callsign: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    eet_budget_minutes: Optional[float] = None
    departure_time: Optional[pd.Timestamp] = None
    arrival_time: Optional[pd.Timestamp] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def start_point_id(self) -> Optional[str]:
        if self.origin:
            return self.origin
        return self.points[0].waypoint_id if self.points else None

    @property
    def end_point_id(self) -> Optional[str]:
        if self.destination:
            return self.destination
        return self.points[-1].waypoint_id if self.points else None


@dataclass(frozen=True)
class ActualTrajectory:
    flight_id: int
    points: Tuple[TrackingPoint, ...]
    callsign: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def start_time(self) -> pd.Timestamp:
        return self.points[0].time

    def duration_ms(self) -> int:
        """Return last minus first timestamp; undefined for fewer than two points."""

        if len(self.points) < 2:
            raise ValueError(f"Flight {self.flight_id} has {len(self.points)} tracking points; duration is undefined")
        return self.points[-1].timestamp_ms - self.points[0].timestamp_ms


@dataclass
class DensificationOutcome:
    """Status and counters for one densification attempt."""

    flight_id: int
    status: DensificationStatus
    original_count: int = 0
    output_count: int = 0
    target_count: int = 0
    simulated_count: int = 0
    linear_count: int = 0
    preserved_count: int = 0
    message: str = ""
    processing_time_ms: float = 0.0
    processed_at: pd.Timestamp = field(default_factory=lambda: pd.Timestamp.now(tz="UTC"))

    @property
    def is_success(self) -> bool:
        return self.status is DensificationStatus.SUCCESS

    @property
    def simulation_success_rate(self) -> float:
        generated = self.simulated_count + self.linear_count
        return self.simulated_count * 100.0 / generated if generated else 0.0

    def as_record(self) -> dict:
        return {
            "flight_id": self.flight_id,
            "status": self.status.value,
            "original_count": self.original_count,
            "output_count": self.output_count,
            "target_count": self.target_count,
            "simulated_count": self.simulated_count,
            "linear_count": self.linear_count,
            "preserved_count": self.preserved_count,
            "simulation_success_rate": round(self.simulation_success_rate, 1),
            "processing_time_ms": self.processing_time_ms,
            "message": self.message,
        }
