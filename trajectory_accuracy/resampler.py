"""Densification of sparse predicted routes to the density of a recorded track.

The predicted route is cut into segments on a timeline rescaled to the real
flight duration. Each target index is then placed at the same fraction of the
flight as the corresponding tracking point, using the position simulator when
it yields a state and linear interpolation inside the containing segment
otherwise.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

import pandas as pd

from .base import PipelineComponent
from .config import AnalysisConfig
from .exceptions import FlightTimeout
from .models import (
    INTERPOLATED,
    ActualTrajectory,
    DensificationOutcome,
    DensificationStatus,
    InterpolationMethod,
    PredictedTrajectory,
    RoutePoint,
)
from .simulator import FlightPlan, PositionSimulator, Segment, SimulationContext, SimulatorFactory
from .units import DEFAULT_CRUISE_ALTITUDE_M, flight_level_to_meters, start_of_day


@dataclass
class DensificationResult:
    """Outcome plus the trajectory the caller should keep.

    ``trajectory`` is the untouched input for ``NoActionNeeded``, a new
    trajectory for ``Success`` and ``None`` for every failure.
    """

    outcome: DensificationOutcome
    trajectory: Optional[PredictedTrajectory] = None


def _planned_altitude_m(point: RoutePoint) -> float:
    if point.level_m is not None:
        return float(point.level_m)
    if point.altitude_m is not None:
        return float(point.altitude_m)
    return DEFAULT_CRUISE_ALTITUDE_M


class TrajectoryResampler(PipelineComponent):
    """Produce a predicted trajectory with exactly one point per tracking point."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        simulator_factory: Optional[SimulatorFactory] = None,
    ) -> None:
        super().__init__(config)
        self.simulator_factory = simulator_factory

    # ------------------------------------------------------------------
    # Timeline and segments
    # ------------------------------------------------------------------
    def elapsed_minutes(self, points: Sequence[RoutePoint]) -> List[float]:
        """Return strictly increasing planned elapsed times, one per route point."""

        hop = self.config.default_hop_minutes
        values: List[float] = []
        for i, point in enumerate(points):
            raw = point.eet_minutes
            if raw is None or (i > 0 and raw == 0.0):
                value = i * hop
            else:
                value = float(raw)
            if values and value <= values[-1]:
                value = values[-1] + hop
            values.append(value)
        return values

    def build_segments(self, predicted: PredictedTrajectory, actual_duration_s: float) -> List[Segment]:
        """Cut the route into directed segments on a timeline ending at ``actual_duration_s``."""

        points = predicted.points
        if len(points) < 2:
            self.logger.warning("Insufficient route points for segment creation: %d", len(points))
            return []

        eets = self.elapsed_minutes(points)
        if eets[-1] <= 0:
            eets = [i * self.config.default_hop_minutes for i in range(len(points))]
        scale = (actual_duration_s / 60.0) / eets[-1]
        aet_seconds = [value * scale * 60.0 for value in eets]
        self.logger.debug(
            "EET normalisation for flight %d: duration=%.1fs, max planned EET=%.1fmin, scale=%.4f",
            predicted.flight_id,
            actual_duration_s,
            eets[-1],
            scale,
        )

        segments: List[Segment] = []
        for i in range(len(points) - 1):
            current, nxt = points[i], points[i + 1]
            if current.has_null_coordinates or nxt.has_null_coordinates:
                self.logger.warning("Skipping segment %d of flight %d due to invalid coordinates", i, predicted.flight_id)
                continue
            segments.append(
                Segment(
                    index=i,
                    start_id=current.waypoint_id or f"WPT{i}",
                    end_id=nxt.waypoint_id or f"WPT{i + 1}",
                    start_lat=current.latitude,
                    start_lon=current.longitude,
                    end_lat=nxt.latitude,
                    end_lon=nxt.longitude,
                    start_altitude_m=_planned_altitude_m(current),
                    end_altitude_m=_planned_altitude_m(nxt),
                    aet_start=aet_seconds[i],
                    aet_end=aet_seconds[i + 1],
                    start_speed=current.ground_speed,
                    end_speed=nxt.ground_speed,
                )
            )
        return segments

    # ------------------------------------------------------------------
    # Point generation
    # ------------------------------------------------------------------
    def _open_session(self, plan: FlightPlan) -> Optional[PositionSimulator]:
        if self.simulator_factory is None:
            return None
        try:
            return self.simulator_factory(plan.session_start)
        except Exception as exc:
            self.logger.warning("Could not start simulator session for flight %d: %s", plan.flight_id, exc)
            return None

    def _simulate_point(
        self,
        simulator: PositionSimulator,
        plan: FlightPlan,
        context: SimulationContext,
        sim_time: float,
        index: int,
    ) -> Optional[RoutePoint]:
        try:
            simulator.set_current_time(plan.departure_time + pd.Timedelta(seconds=sim_time))
            state = simulator.simulate(plan, context.aux_state)
        except Exception as exc:
            self.logger.debug("Simulator raised for flight %d at %.1fs: %s", plan.flight_id, sim_time, exc)
            return None
        if state is None:
            return None

        altitude_m = flight_level_to_meters(state.flight_level)
        return RoutePoint(
            latitude=state.latitude,
            longitude=state.longitude,
            altitude_m=altitude_m,
            level_m=altitude_m,
            eet_minutes=sim_time / 60.0,
            ground_speed=state.speed if state.speed > 0 else None,
            waypoint_id=f"SIM_{index}",
            waypoint_type=INTERPOLATED,
            sequence=index,
            interpolated=True,
            interpolation_method=InterpolationMethod.SIMULATED,
        )

    def _interpolate_point(self, plan: FlightPlan, sim_time: float, index: int) -> Optional[RoutePoint]:
        segment = plan.segment_at(sim_time)
        if segment is None:
            return None

        ratio = segment.ratio(sim_time)
        altitude_m = segment.start_altitude_m + ratio * (segment.end_altitude_m - segment.start_altitude_m)
        return RoutePoint(
            latitude=segment.start_lat + ratio * (segment.end_lat - segment.start_lat),
            longitude=segment.start_lon + ratio * (segment.end_lon - segment.start_lon),
            altitude_m=altitude_m,
            level_m=altitude_m,
            eet_minutes=sim_time / 60.0,
            waypoint_id=f"INTERP_{index}",
            waypoint_type=INTERPOLATED,
            sequence=index,
            interpolated=True,
            interpolation_method=InterpolationMethod.LINEAR,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def densify(
        self,
        predicted: Optional[PredictedTrajectory],
        actual: Optional[ActualTrajectory],
        timeout_s: Optional[float] = None,
    ) -> DensificationResult:
        """Resample ``predicted`` to ``len(actual.points)`` points.

        Raises
        ------
        FlightTimeout
            When ``timeout_s`` elapses before every target point is produced.
        """

        started = time.monotonic()
        deadline = started + timeout_s if timeout_s is not None else None

        if predicted is None or actual is None:
            flight_id = predicted.flight_id if predicted is not None else actual.flight_id if actual is not None else -1
            self.logger.warning("Could not find matching predicted and actual flights for %d", flight_id)
            return DensificationResult(
                DensificationOutcome(flight_id, DensificationStatus.NOT_FOUND, message="Predicted or actual flight not found")
            )

        flight_id = predicted.flight_id
        target = len(actual.points)
        original = len(predicted.points)

        def _outcome(status: DensificationStatus, message: str, **counts: int) -> DensificationOutcome:
            return DensificationOutcome(
                flight_id,
                status,
                original_count=original,
                target_count=target,
                message=message,
                processing_time_ms=(time.monotonic() - started) * 1000.0,
                **counts,
            )

        self.logger.info(
            "Flight %d: actual track has %d points, predicted route has %d points", flight_id, target, original
        )
        if target <= original:
            return DensificationResult(
                _outcome(
                    DensificationStatus.NO_ACTION_NEEDED,
                    f"Predicted route already has {original} points for a target of {target}",
                    output_count=original,
                ),
                predicted,
            )
        if original < 2:
            return DensificationResult(
                _outcome(DensificationStatus.VALIDATION_FAILED, f"Cannot segment a route with {original} point(s)")
            )

        duration_ms = actual.duration_ms()
        if duration_ms <= 0:
            return DensificationResult(
                _outcome(DensificationStatus.VALIDATION_FAILED, "Actual track has zero duration")
            )

        segments = self.build_segments(predicted, duration_ms / 1000.0)
        if not segments:
            return DensificationResult(
                _outcome(DensificationStatus.VALIDATION_FAILED, "No valid route segments could be built")
            )

        departure = actual.start_time
        plan = FlightPlan(
            flight_id=flight_id,
            segments=tuple(segments),
            departure_time=departure,
            session_start=start_of_day(departure),
            callsign=predicted.callsign,
        )
        simulator = self._open_session(plan)
        context = SimulationContext(flight_id)

        first, last = predicted.points[0], predicted.points[-1]
        preserve_first = first.is_airport
        preserve_last = original > 1 and last.is_airport
        t0 = actual.points[0].timestamp_ms

        produced: List[RoutePoint] = []
        simulated = linear = preserved = dropped = 0
        for i in range(target):
            if deadline is not None and time.monotonic() > deadline:
                raise FlightTimeout(flight_id, timeout_s)

            if i == 0 and preserve_first:
                produced.append(replace(first, sequence=i, interpolated=False, interpolation_method=InterpolationMethod.NONE))
                preserved += 1
                continue
            if i == target - 1 and preserve_last:
                produced.append(replace(last, sequence=i, interpolated=False, interpolation_method=InterpolationMethod.NONE))
                preserved += 1
                continue

            progress = (actual.points[i].timestamp_ms - t0) / duration_ms
            sim_time = min(plan.plan_start + progress * plan.plan_duration, plan.plan_end)

            point = None
            if simulator is not None:
                point = self._simulate_point(simulator, plan, context, sim_time, i)
            if point is not None:
                simulated += 1
            else:
                point = self._interpolate_point(plan, sim_time, i)
                if point is None:
                    dropped += 1
                    self.logger.debug("Could not generate point %d of flight %d at %.1fs", i, flight_id, sim_time)
                    continue
                linear += 1
            produced.append(point)

        generated = simulated + linear
        self.logger.info(
            "Densification of flight %d completed: %d simulated, %d linear, %d dropped (%.1f%% simulated)",
            flight_id,
            simulated,
            linear,
            dropped,
            simulated * 100.0 / generated if generated else 0.0,
        )

        counts = dict(output_count=len(produced), simulated_count=simulated, linear_count=linear, preserved_count=preserved)
        failure_status = (
            DensificationStatus.SIMULATION_UNAVAILABLE if simulator is None else DensificationStatus.VALIDATION_FAILED
        )
        if not produced:
            self.logger.warning("Densification failed for flight %d: no route points generated", flight_id)
            return DensificationResult(
                _outcome(failure_status, "Densification failed: no route points generated. Original route preserved.", **counts)
            )
        if len(produced) < original:
            self.logger.warning(
                "Densification generated fewer points (%d) than original (%d) for flight %d", len(produced), original, flight_id
            )
            return DensificationResult(
                _outcome(
                    failure_status,
                    f"Densification failed: generated {len(produced)} points, less than original {original}. "
                    "Original route preserved.",
                    **counts,
                )
            )
        if len(produced) != target:
            return DensificationResult(
                _outcome(
                    failure_status,
                    f"Densification incomplete: generated {len(produced)} of {target} points. Original route preserved.",
                    **counts,
                )
            )

        densified = replace(predicted, points=tuple(produced))
        message = (
            f"Densified trajectory from {original} to {len(produced)} points (target: {target}) - "
            f"{simulated} simulated, {linear} linear"
        )
        return DensificationResult(_outcome(DensificationStatus.SUCCESS, message, **counts), densified)
