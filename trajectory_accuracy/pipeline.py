"""Batch orchestration of resolution, densification and scoring.

Flights are independent, so every flight runs as its own job on a
``ThreadPoolExecutor`` with a fresh simulator session. Results are reduced
once all jobs have finished. Cancellation is checked before each flight
starts; flights that never started are reported as cancelled. With
``flight_timeout_s`` set, a flight whose resampling outlives the timeout is
recorded as timed out and the batch moves on without waiting for it.
"""

from __future__ import annotations

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .accuracy import AccuracyAnalyzer, AccuracyReport
from .base import PipelineComponent
from .config import AnalysisConfig
from .exceptions import FlightTimeout, PersistenceFailure
from .models import ActualTrajectory, DensificationOutcome, PredictedTrajectory
from .punctuality import PunctualityCalculator, PunctualityReport
from .resampler import DensificationResult, TrajectoryResampler
from .resolver import FlightPairResolver, PairResolution, QualificationStats
from .simulator import SimulatorFactory
from .store import FlightRecordStore


@dataclass
class FlightTaskResult:
    """What happened to a single flight inside a batch."""

    flight_id: int
    outcome: Optional[DensificationOutcome] = None
    trajectory: Optional[PredictedTrajectory] = None
    persisted: bool = False
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_record(self) -> dict:
        record = {"flight_id": self.flight_id}
        if self.outcome is not None:
            record.update(self.outcome.as_record())
        else:
            record.update({"status": None, "message": None})
        record.update({"persisted": self.persisted, "timed_out": self.timed_out, "error": self.error})
        return record


@dataclass
class BatchResult:
    results: List[FlightTaskResult] = field(default_factory=list)
    cancelled: List[int] = field(default_factory=list)

    def status_counts(self) -> Dict[str, int]:
        return dict(Counter(r.outcome.status.value for r in self.results if r.outcome is not None))

    @property
    def failures(self) -> List[FlightTaskResult]:
        return [r for r in self.results if r.failed]

    @property
    def timed_out(self) -> List[int]:
        return [r.flight_id for r in self.results if r.timed_out]

    @property
    def persisted_count(self) -> int:
        return sum(1 for r in self.results if r.persisted)

    def unsaved_trajectories(self) -> List[PredictedTrajectory]:
        """Successful trajectories whose save failed and may be retried."""

        return [
            r.trajectory
            for r in self.results
            if r.trajectory is not None and r.outcome is not None and r.outcome.is_success and not r.persisted
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([r.as_record() for r in self.results])


@dataclass
class AnalysisSummary:
    qualification: QualificationStats
    resolutions: List[PairResolution]
    densification: BatchResult
    accuracy: AccuracyReport
    punctuality: PunctualityReport

    @property
    def cancelled(self) -> List[int]:
        return self.densification.cancelled


_CANCELLED = object()


class FlightAnalysisPipeline(PipelineComponent):
    """Run densification and accuracy/punctuality analysis over many flights."""

    def __init__(
        self,
        store: FlightRecordStore,
        config: AnalysisConfig | None = None,
        simulator_factory: Optional[SimulatorFactory] = None,
    ) -> None:
        super().__init__(config)
        self.store = store
        self.resolver = FlightPairResolver(store, self.config)
        self.resampler = TrajectoryResampler(self.config, simulator_factory)
        self.accuracy = AccuracyAnalyzer(self.config)
        self.punctuality = PunctualityCalculator(self.config)

    # ------------------------------------------------------------------
    # Single flight
    # ------------------------------------------------------------------
    def _save(self, trajectory: PredictedTrajectory) -> None:
        try:
            self.store.save_predicted(trajectory)
        except Exception as exc:
            self.logger.error("Saving densified trajectory for flight %d failed: %s", trajectory.flight_id, exc)
            raise PersistenceFailure(trajectory.flight_id, trajectory, exc) from exc

    def densify_flight(self, flight_id: int, timeout_s: Optional[float] = None) -> DensificationResult:
        """Densify one flight and persist the new trajectory when it succeeds.

        Raises
        ------
        PersistenceFailure
            When the store rejects the save; the exception carries the trajectory.
        FlightTimeout
            When ``timeout_s`` elapses during resampling.
        """

        predicted, actual = self.resolver.lookup(flight_id)
        result = self.resampler.densify(predicted, actual, timeout_s=timeout_s)
        if result.outcome.is_success and result.trajectory is not None:
            self._save(result.trajectory)
        return result

    def retry_save(self, trajectory: PredictedTrajectory) -> None:
        """Persist a trajectory carried by a previous :class:`PersistenceFailure`."""

        self._save(trajectory)
        self.logger.info("Retried save of flight %d succeeded", trajectory.flight_id)

    # ------------------------------------------------------------------
    # Batch helpers
    # ------------------------------------------------------------------
    def _run_jobs(self, job, items: List, cancel_event: Optional[threading.Event]) -> Tuple[List, List]:
        """Run ``job`` for each item in a thread pool; return finished values and skipped items."""

        def _guarded(item):
            if cancel_event is not None and cancel_event.is_set():
                return _CANCELLED
            return job(item)

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [executor.submit(_guarded, item) for item in items]
            values = [future.result() for future in futures]

        finished, skipped = [], []
        for item, value in zip(items, values):
            if value is _CANCELLED:
                skipped.append(item)
            else:
                finished.append(value)
        if skipped:
            self.logger.warning("Cancelled before processing %d of %d flights", len(skipped), len(items))
        return finished, skipped

    def _resample_with_timeout(
        self,
        flight_id: int,
        predicted: Optional[PredictedTrajectory],
        actual: Optional[ActualTrajectory],
    ) -> DensificationResult:
        """Resample one flight, giving up once ``flight_timeout_s`` has elapsed.

        The resampler also checks the deadline between points. The watchdog
        wait covers a simulator call that blocks; the abandoned worker stops at
        its next deadline check and its result is discarded.
        """

        timeout = self.config.flight_timeout_s
        if timeout is None:
            return self.resampler.densify(predicted, actual)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"flight-{flight_id}")
        future = executor.submit(self.resampler.densify, predicted, actual, timeout)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise FlightTimeout(flight_id, timeout) from None
        finally:
            executor.shutdown(wait=False)

    def _densify_job(self, flight_id: int, persist: bool) -> FlightTaskResult:
        task = FlightTaskResult(int(flight_id))
        try:
            predicted, actual = self.resolver.lookup(flight_id)
            result = self._resample_with_timeout(task.flight_id, predicted, actual)
            task.outcome = result.outcome
            task.trajectory = result.trajectory
            if persist and result.outcome.is_success:
                self._save(result.trajectory)
                task.persisted = True
        except FlightTimeout as exc:
            task.timed_out = True
            task.error = str(exc)
            self.logger.warning("%s", exc)
        except PersistenceFailure as exc:
            task.trajectory = exc.trajectory
            task.error = str(exc)
        except Exception as exc:
            task.error = f"{type(exc).__name__}: {exc}"
            self.logger.exception("Densification of flight %d crashed", flight_id)
        return task

    # ------------------------------------------------------------------
    # Batch entry points
    # ------------------------------------------------------------------
    def densify_batch(self, flight_ids: Iterable[int], cancel_event: Optional[threading.Event] = None) -> BatchResult:
        """Densify and persist every flight; failures are recorded and never stop the batch."""

        ids = [int(f) for f in flight_ids]
        self.logger.info("Densifying %d flights with %d workers", len(ids), self.config.max_workers)
        tasks, cancelled = self._run_jobs(lambda fid: self._densify_job(fid, persist=True), ids, cancel_event)
        batch = BatchResult(results=tasks, cancelled=cancelled)

        self.logger.info(
            "Densification batch done: %s, %d persisted, %d failed, %d timed out, %d cancelled",
            batch.status_counts(),
            batch.persisted_count,
            len(batch.failures),
            len(batch.timed_out),
            len(batch.cancelled),
        )
        return batch

    def analyze(
        self,
        flight_ids: Iterable[int],
        cancel_event: Optional[threading.Event] = None,
        persist: bool = False,
    ) -> AnalysisSummary:
        """Resolve, densify and score every qualifying flight.

        Densified trajectories stay in memory unless ``persist`` is set, in
        which case successful ones are also saved to the store.
        """

        resolutions, stats = self.resolver.resolve_many(int(f) for f in flight_ids)
        matched = [r for r in resolutions if r.is_matched]

        def _job(resolution: PairResolution) -> Tuple[FlightTaskResult, PredictedTrajectory, ActualTrajectory]:
            task = self._densify_job(resolution.flight_id, persist=persist)
            return task, resolution.predicted, resolution.actual

        finished, skipped = self._run_jobs(_job, matched, cancel_event)

        accuracy_pairs: List[Tuple[PredictedTrajectory, ActualTrajectory]] = []
        punctuality_pairs: List[Tuple[PredictedTrajectory, ActualTrajectory]] = []
        tasks: List[FlightTaskResult] = []
        for task, predicted, actual in finished:
            tasks.append(task)
            punctuality_pairs.append((predicted, actual))
            if task.failed and task.trajectory is None:
                continue
            accuracy_pairs.append((task.trajectory if task.trajectory is not None else predicted, actual))

        batch = BatchResult(results=tasks, cancelled=[r.flight_id for r in skipped])
        accuracy = self.accuracy.analyze(accuracy_pairs)
        punctuality = self.punctuality.calculate(punctuality_pairs)
        return AnalysisSummary(stats, resolutions, batch, accuracy, punctuality)
