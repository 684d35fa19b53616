"""Custom exception classes for the trajectory accuracy pipeline.

Per-flight analysis failures are reported as typed results; exceptions are
reserved for configuration mistakes, unreadable inputs, timeouts and the
persistence boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import PredictedTrajectory


class TrajectoryAnalysisError(Exception):
    """Base exception for all trajectory analysis errors."""

    pass


class ConfigError(TrajectoryAnalysisError):
    """Raised when the analysis configuration is invalid."""

    pass


class RecordFormatError(TrajectoryAnalysisError):
    """Raised when a flight record file lacks required columns or values."""

    pass


class FlightTimeout(TrajectoryAnalysisError):
    """Raised when a single flight exceeds its processing deadline."""

    def __init__(self, flight_id: int, timeout_s: float):
        self.flight_id = flight_id
        self.timeout_s = timeout_s
        super().__init__(f"Flight {flight_id} exceeded its {timeout_s:.1f}s deadline")


class PersistenceFailure(TrajectoryAnalysisError):
    """Raised when saving a densified trajectory fails.

    The computed trajectory travels with the exception so the caller can retry
    the save without recomputing it.
    """

    def __init__(
        self,
        flight_id: int,
        trajectory: "PredictedTrajectory",
        cause: Optional[BaseException] = None,
    ):
        self.flight_id = flight_id
        self.trajectory = trajectory
        self.cause = cause
        super().__init__(f"Could not persist densified trajectory for flight {flight_id}: {cause}")
