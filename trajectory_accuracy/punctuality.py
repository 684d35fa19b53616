"""Punctuality of predicted flight durations against recorded flight durations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .base import PipelineComponent
from .models import ActualTrajectory, PredictedTrajectory


@dataclass
class FlightPunctuality:
    flight_id: int
    predicted_minutes: Optional[float] = None
    actual_minutes: Optional[float] = None
    duration_source: Optional[str] = None
    within: Dict[float, bool] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def difference_minutes(self) -> Optional[float]:
        if self.predicted_minutes is None or self.actual_minutes is None:
            return None
        return abs(self.predicted_minutes - self.actual_minutes)

    def as_record(self) -> dict:
        record = {
            "flight_id": self.flight_id,
            "predicted_minutes": self.predicted_minutes,
            "actual_minutes": self.actual_minutes,
            "difference_minutes": self.difference_minutes,
            "duration_source": self.duration_source,
            "error": self.error,
        }
        for window, inside in self.within.items():
            record[f"within_{window:g}_min"] = inside
        return record


@dataclass
class ToleranceWindowResult:
    window_minutes: float
    count: int
    total: int
    percentage: float

    @property
    def description(self) -> str:
        return f"± {self.window_minutes:g} minutes"

    @property
    def kpi_text(self) -> str:
        return f"{self.percentage:.1f}% of flights within {self.description} ({self.count}/{self.total})"


@dataclass
class PunctualityReport:
    windows: List[ToleranceWindowResult] = field(default_factory=list)
    flights: List[FlightPunctuality] = field(default_factory=list)
    qualified_count: int = 0
    analyzed_count: int = 0
    error_count: int = 0

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "window_minutes": w.window_minutes,
                    "description": w.description,
                    "count": w.count,
                    "total": w.total,
                    "percentage": w.percentage,
                }
                for w in self.windows
            ]
        )

    def details_frame(self) -> pd.DataFrame:
        return pd.DataFrame([f.as_record() for f in self.flights])


class PunctualityCalculator(PipelineComponent):
    """Share of flights whose predicted duration lands inside each tolerance window."""

    @staticmethod
    def predicted_duration_minutes(predicted: PredictedTrajectory) -> Tuple[Optional[float], Optional[str]]:
        """Return the planned flight duration and the source it came from.

        The planned elapsed times between consecutive route points are summed
        first; the elapsed-time budget and the planned departure/arrival
        window are used when the route carries no usable elapsed times.
        """

        eets = [p.eet_minutes for p in predicted.points if p.eet_minutes is not None]
        if len(eets) >= 2:
            total = sum(b - a for a, b in zip(eets, eets[1:]))
            if total > 0:
                return total, "eet"

        if predicted.eet_budget_minutes is not None and predicted.eet_budget_minutes > 0:
            return float(predicted.eet_budget_minutes), "eet_budget"

        if predicted.departure_time is not None and predicted.arrival_time is not None:
            window = (predicted.arrival_time - predicted.departure_time).total_seconds() / 60.0
            if window > 0:
                return window, "schedule"
        return None, None

    def analyze_flight(self, predicted: PredictedTrajectory, actual: ActualTrajectory) -> FlightPunctuality:
        result = FlightPunctuality(predicted.flight_id)
        if len(actual.points) < 2:
            result.error = f"Actual track has {len(actual.points)} point(s)"
            return result

        result.actual_minutes = actual.duration_ms() / 60000.0
        result.predicted_minutes, result.duration_source = self.predicted_duration_minutes(predicted)
        if result.predicted_minutes is None:
            result.error = "No usable predicted duration"
            return result

        diff = result.difference_minutes
        result.within = {w: diff <= w for w in self.config.tolerance_windows_min}
        return result

    def calculate(self, pairs: Iterable[Tuple[PredictedTrajectory, ActualTrajectory]]) -> PunctualityReport:
        report = PunctualityReport()
        for predicted, actual in pairs:
            report.qualified_count += 1
            flight = self.analyze_flight(predicted, actual)
            report.flights.append(flight)
            if flight.error:
                report.error_count += 1
                self.logger.warning("Flight %d excluded from punctuality: %s", flight.flight_id, flight.error)
            else:
                report.analyzed_count += 1

        total = report.analyzed_count
        for window in self.config.tolerance_windows_min:
            count = sum(1 for f in report.flights if f.error is None and f.within[window])
            percentage = round(count * 100.0 / total, 1) if total else 0.0
            report.windows.append(ToleranceWindowResult(window, count, total, percentage))

        self.logger.info(
            "Punctuality: %d flights analysed, %d errors", report.analyzed_count, report.error_count
        )
        for window in report.windows:
            self.logger.info("  %s", window.kpi_text)
        return report
