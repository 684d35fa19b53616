import math
import time

import numpy as np
import pandas as pd
import pytest

from trajectory_accuracy.models import AERODROME, FIX, ActualTrajectory, PredictedTrajectory, RoutePoint, TrackingPoint

SBSP = (-23.6261, -46.6564)
SBRJ = (-22.9105, -43.1631)
T0_MS = 1_700_000_000_000


def build_route(
    flight_id=1,
    n=10,
    start=SBSP,
    end=SBRJ,
    ids=("SBSP", "SBRJ"),
    airport_endpoints=True,
    eet_step=6.0,
    callsign="TAM3001",
):
    lats = np.linspace(start[0], end[0], n)
    lons = np.linspace(start[1], end[1], n)
    points = []
    for i in range(n):
        endpoint = i in (0, n - 1)
        if i == 0:
            waypoint_id = ids[0]
        elif i == n - 1:
            waypoint_id = ids[1]
        else:
            waypoint_id = f"WPT{i}"
        points.append(
            RoutePoint(
                latitude=float(lats[i]),
                longitude=float(lons[i]),
                altitude_m=0.0 if endpoint else 10668.0,
                level_m=None if endpoint else 10668.0,
                eet_minutes=i * eet_step if eet_step is not None else None,
                waypoint_id=waypoint_id,
                waypoint_type=AERODROME if endpoint and airport_endpoints else FIX,
                sequence=i,
            )
        )
    return PredictedTrajectory(flight_id, points, callsign=callsign)


def build_track(flight_id=1, n=100, start=SBSP, end=SBRJ, duration_min=60.0, cruise_fl=350.0, callsign="TAM3001"):
    lats = np.radians(np.linspace(start[0], end[0], n))
    lons = np.radians(np.linspace(start[1], end[1], n))
    step_ms = duration_min * 60000.0 / max(n - 1, 1)
    points = []
    for i in range(n):
        frac = i / (n - 1) if n > 1 else 0.0
        points.append(
            TrackingPoint(
                latitude=float(lats[i]),
                longitude=float(lons[i]),
                flight_level=round(cruise_fl * math.sin(math.pi * frac), 6),
                timestamp_ms=T0_MS + int(round(i * step_ms)),
                sequence=i,
            )
        )
    return ActualTrajectory(flight_id, points, callsign=callsign)


def mirror_route(actual, altitude_offset_m=0.0, flight_id=None):
    """Predicted trajectory sitting exactly on the recorded positions."""

    points = [
        RoutePoint(
            latitude=math.degrees(p.latitude),
            longitude=math.degrees(p.longitude),
            altitude_m=p.flight_level * 30.48 + altitude_offset_m,
            sequence=i,
        )
        for i, p in enumerate(actual.points)
    ]
    return PredictedTrajectory(flight_id if flight_id is not None else actual.flight_id, points)


class RaisingSimulator:
    def __init__(self, session_start):
        self.session_start = session_start

    def set_current_time(self, t):
        pass

    def simulate(self, flight_plan, aux_state):
        raise RuntimeError("engine failure")


class EmptySimulator(RaisingSimulator):
    def simulate(self, flight_plan, aux_state):
        return None


class SlowSimulator(EmptySimulator):
    def simulate(self, flight_plan, aux_state):
        time.sleep(0.02)
        return None


@pytest.fixture
def route():
    return build_route


@pytest.fixture
def track():
    return build_track


@pytest.fixture
def mirror():
    return mirror_route


@pytest.fixture
def simulators():
    return {"raising": RaisingSimulator, "empty": EmptySimulator, "slow": SlowSimulator}


@pytest.fixture
def t0():
    return pd.Timestamp(T0_MS, unit="ms", tz="UTC")
