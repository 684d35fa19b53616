"""Flight record store seam and the in-memory implementation used by the CLI."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Protocol

import pandas as pd

from .io import routes_from_frame, tracks_from_frame
from .models import ActualTrajectory, PredictedTrajectory


class FlightRecordStore(Protocol):
    def get_actual(self, flight_id: int) -> Optional[ActualTrajectory]:
        ...

    def get_predicted(self, flight_id: int) -> Optional[PredictedTrajectory]:
        ...

    def save_predicted(self, trajectory: PredictedTrajectory) -> None:
        ...


class InMemoryFlightRecordStore:
    """Dictionary-backed store that is safe to share across worker threads."""

    def __init__(
        self,
        actual: Iterable[ActualTrajectory] = (),
        predicted: Iterable[PredictedTrajectory] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._actual: Dict[int, ActualTrajectory] = {t.flight_id: t for t in actual}
        self._predicted: Dict[int, PredictedTrajectory] = {t.flight_id: t for t in predicted}
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_frames(cls, tracks: pd.DataFrame, routes: pd.DataFrame) -> "InMemoryFlightRecordStore":
        return cls(tracks_from_frame(tracks).values(), routes_from_frame(routes).values())

    def get_actual(self, flight_id: int) -> Optional[ActualTrajectory]:
        with self._lock:
            return self._actual.get(int(flight_id))

    def get_predicted(self, flight_id: int) -> Optional[PredictedTrajectory]:
        with self._lock:
            return self._predicted.get(int(flight_id))

    def save_predicted(self, trajectory: PredictedTrajectory) -> None:
        with self._lock:
            self._predicted[trajectory.flight_id] = trajectory
        self.logger.debug("Stored predicted trajectory %d (%d points)", trajectory.flight_id, len(trajectory))

    def add_actual(self, trajectory: ActualTrajectory) -> None:
        with self._lock:
            self._actual[trajectory.flight_id] = trajectory

    def flight_ids(self) -> List[int]:
        """Return every identifier known to either side, sorted."""

        with self._lock:
            return sorted(set(self._actual) | set(self._predicted))

    def predicted_trajectories(self) -> List[PredictedTrajectory]:
        with self._lock:
            return [self._predicted[k] for k in sorted(self._predicted)]
