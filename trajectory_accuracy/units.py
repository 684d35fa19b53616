"""Unit conversions, UTC timestamps and geodesic helpers.

Every altitude conversion in the package goes through the constants declared
here; flight levels are hundreds of feet, i.e. 30.48 meters per unit.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
from pyproj import Geod

METERS_PER_FLIGHT_LEVEL = 30.48
FEET_PER_METER = 1.0 / 0.3048
METERS_PER_NAUTICAL_MILE = 1852.0
DEFAULT_CRUISE_ALTITUDE_M = 350 * METERS_PER_FLIGHT_LEVEL

WGS84 = Geod(ellps="WGS84")


def flight_level_to_meters(flight_level: float) -> float:
    return float(flight_level) * METERS_PER_FLIGHT_LEVEL


def meters_to_flight_level(meters: float) -> float:
    return float(meters) / METERS_PER_FLIGHT_LEVEL


def utc_from_millis(epoch_ms: int | float) -> pd.Timestamp:
    """Return the UTC timestamp for an epoch value in milliseconds."""

    return pd.Timestamp(int(epoch_ms), unit="ms", tz="UTC")


def to_utc(value: object) -> pd.Timestamp:
    """Coerce a datetime-like value to a tz-aware UTC timestamp.

    Naive values are interpreted as UTC rather than local time.
    """

    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def start_of_day(ts: pd.Timestamp) -> pd.Timestamp:
    """Return midnight UTC of the day containing ``ts``."""

    return to_utc(ts).normalize()


def geodesic_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (WGS84 geodesic) distance in meters between two points in degrees."""

    _, _, dist = WGS84.inv(lon1, lat1, lon2, lat2)
    return float(dist)


def geodesic_distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return geodesic_distance_m(lat1, lon1, lat2, lon2) / METERS_PER_NAUTICAL_MILE


def radians_to_degrees(value: float) -> float:
    return math.degrees(value)


def degrees_to_radians(values) -> np.ndarray | float:
    return np.deg2rad(values)
