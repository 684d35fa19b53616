"""Point-by-point accuracy of predicted trajectories against recorded tracks.

Horizontal error is the Euclidean distance in radian space between a predicted
point (converted from degrees) and the corresponding tracking point. Vertical
error is the absolute altitude difference in meters, with tracking altitude
derived from the flight level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .base import PipelineComponent
from .models import ActualTrajectory, PredictedTrajectory
from .units import METERS_PER_FLIGHT_LEVEL, degrees_to_radians


@dataclass
class FlightAccuracy:
    flight_id: int
    point_count: int
    horizontal_mse: float
    vertical_mse: float
    horizontal_max: float = 0.0
    vertical_max: float = 0.0
    horizontal_mean: float = 0.0
    vertical_mean: float = 0.0
    predicted_callsign: Optional[str] = None
    actual_callsign: Optional[str] = None

    @property
    def horizontal_rmse(self) -> float:
        return math.sqrt(self.horizontal_mse)

    @property
    def vertical_rmse(self) -> float:
        return math.sqrt(self.vertical_mse)

    def as_record(self) -> dict:
        return {
            "flight_id": self.flight_id,
            "predicted_callsign": self.predicted_callsign,
            "actual_callsign": self.actual_callsign,
            "point_count": self.point_count,
            "horizontal_mse": self.horizontal_mse,
            "horizontal_rmse": self.horizontal_rmse,
            "horizontal_max": self.horizontal_max,
            "horizontal_mean": self.horizontal_mean,
            "vertical_mse_m2": self.vertical_mse,
            "vertical_rmse_m": self.vertical_rmse,
            "vertical_max_m": self.vertical_max,
            "vertical_mean_m": self.vertical_mean,
        }


@dataclass
class AccuracyReport:
    """Per-flight metrics plus aggregates pooled over every analysed point pair."""

    flights: List[FlightAccuracy] = field(default_factory=list)
    qualified_count: int = 0
    skipped_unequal: int = 0

    @property
    def analyzed_count(self) -> int:
        return len(self.flights)

    @property
    def total_points(self) -> int:
        return sum(f.point_count for f in self.flights)

    @property
    def average_points_per_flight(self) -> float:
        return self.total_points / self.analyzed_count if self.flights else 0.0

    def _pooled(self, attr: str) -> float:
        total = self.total_points
        if not total:
            return 0.0
        return sum(getattr(f, attr) * f.point_count for f in self.flights) / total

    @property
    def horizontal_mse(self) -> float:
        return self._pooled("horizontal_mse")

    @property
    def vertical_mse(self) -> float:
        return self._pooled("vertical_mse")

    @property
    def horizontal_rmse(self) -> float:
        return math.sqrt(self.horizontal_mse)

    @property
    def vertical_rmse(self) -> float:
        return math.sqrt(self.vertical_mse)

    def rmse_range(self, attr: str) -> Tuple[float, float]:
        """Return ``(min, max)`` of a per-flight RMSE attribute, zeros when empty."""

        values = [getattr(f, attr) for f in self.flights]
        if not values:
            return 0.0, 0.0
        return min(values), max(values)

    def summary(self) -> dict:
        h_min, h_max = self.rmse_range("horizontal_rmse")
        v_min, v_max = self.rmse_range("vertical_rmse")
        return {
            "qualified_flights": self.qualified_count,
            "analyzed_flights": self.analyzed_count,
            "skipped_unequal_point_counts": self.skipped_unequal,
            "total_points": self.total_points,
            "average_points_per_flight": self.average_points_per_flight,
            "horizontal_mse": self.horizontal_mse,
            "horizontal_rmse": self.horizontal_rmse,
            "horizontal_rmse_min": h_min,
            "horizontal_rmse_max": h_max,
            "vertical_mse_m2": self.vertical_mse,
            "vertical_rmse_m": self.vertical_rmse,
            "vertical_rmse_min_m": v_min,
            "vertical_rmse_max_m": v_max,
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([f.as_record() for f in self.flights])


class AccuracyAnalyzer(PipelineComponent):
    """Compute MSE/RMSE between equal-length predicted and actual trajectories."""

    @staticmethod
    def error_vectors(predicted: PredictedTrajectory, actual: ActualTrajectory) -> Tuple[np.ndarray, np.ndarray]:
        """Return per-point horizontal (radians) and vertical (meters) absolute errors."""

        pred_lat = degrees_to_radians([p.latitude for p in predicted.points])
        pred_lon = degrees_to_radians([p.longitude for p in predicted.points])
        pred_alt = np.array([p.altitude_meters() for p in predicted.points], dtype=float)

        act_lat = np.array([p.latitude for p in actual.points], dtype=float)
        act_lon = np.array([p.longitude for p in actual.points], dtype=float)
        act_alt = np.array([p.flight_level for p in actual.points], dtype=float) * METERS_PER_FLIGHT_LEVEL

        horizontal = np.hypot(pred_lat - act_lat, pred_lon - act_lon)
        vertical = np.abs(pred_alt - act_alt)
        return horizontal, vertical

    def analyze_flight(self, predicted: PredictedTrajectory, actual: ActualTrajectory) -> Optional[FlightAccuracy]:
        """Return per-flight metrics, or ``None`` when point counts differ or are zero."""

        n_pred, n_act = len(predicted.points), len(actual.points)
        if n_pred != n_act or n_pred == 0:
            self.logger.warning(
                "Flight %d skipped: predicted has %d points, actual has %d", predicted.flight_id, n_pred, n_act
            )
            return None

        horizontal, vertical = self.error_vectors(predicted, actual)
        return FlightAccuracy(
            flight_id=predicted.flight_id,
            point_count=n_pred,
            horizontal_mse=float(np.mean(horizontal**2)),
            vertical_mse=float(np.mean(vertical**2)),
            horizontal_max=float(horizontal.max()),
            vertical_max=float(vertical.max()),
            horizontal_mean=float(horizontal.mean()),
            vertical_mean=float(vertical.mean()),
            predicted_callsign=predicted.callsign,
            actual_callsign=actual.callsign,
        )

    def analyze(self, pairs: Iterable[Tuple[PredictedTrajectory, ActualTrajectory]]) -> AccuracyReport:
        report = AccuracyReport()
        for predicted, actual in pairs:
            report.qualified_count += 1
            result = self.analyze_flight(predicted, actual)
            if result is None:
                report.skipped_unequal += 1
                continue
            report.flights.append(result)

        self.logger.info(
            "Accuracy analysis: %d of %d flights analysed (%d skipped for unequal point counts), %d points",
            report.analyzed_count,
            report.qualified_count,
            report.skipped_unequal,
            report.total_points,
        )
        if report.flights:
            self.logger.info(
                "Pooled horizontal RMSE %.6f rad, vertical RMSE %.1f m",
                report.horizontal_rmse,
                report.vertical_rmse,
            )
        return report
