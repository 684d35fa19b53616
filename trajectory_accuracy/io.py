"""Input/output helpers for flight record tables.

Covers loading tracking and route tables from CSV, Parquet or ``.joblib``
batches, identifier normalisation, conversion between frames and trajectory
objects, and CSV saving of reports.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import joblib
import numpy as np
import pandas as pd

from .exceptions import RecordFormatError
from .models import ActualTrajectory, InterpolationMethod, PredictedTrajectory, RoutePoint, TrackingPoint
from .units import to_utc

# Predicted and actual records name the shared flight-plan key differently.
FLIGHT_ID_ALIASES: List[str] = ["flight_id", "instance_id", "plan_id", "planId", "instanceId"]

TRACK_REQUIRED_COLUMNS: List[str] = ["flight_id", "latitude", "longitude", "flight_level", "timestamp"]
ROUTE_REQUIRED_COLUMNS: List[str] = ["flight_id", "latitude", "longitude"]

ROUTE_COLUMN_ALIASES: Dict[str, str] = {
    "indicative": "waypoint_id",
    "element_type": "waypoint_type",
    "elementType": "waypoint_type",
    "eet": "eet_minutes",
    "eetMinutes": "eet_minutes",
    "levelMeters": "level_m",
    "start_point_indicative": "origin",
    "end_point_indicative": "destination",
    "seq_num": "sequence",
}


def _read_one(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, low_memory=False)
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".joblib":
        data = joblib.load(path)
        if isinstance(data, pd.DataFrame):
            return data.copy()
        if isinstance(data, Iterable):
            return pd.DataFrame(list(data))
        raise RecordFormatError(f"Unsupported data structure in {path}")
    raise RecordFormatError(f"Unsupported file type: {path}")


def load_frames(pattern: str | Path) -> pd.DataFrame:
    """Load and concatenate every CSV/Parquet/joblib file matching the glob."""

    paths = sorted(glob.glob(str(pattern)))
    if not paths:
        raise FileNotFoundError(f"No files matched glob: {pattern}")

    frames: List[pd.DataFrame] = []
    for path in paths:
        logging.info("Reading %s", path)
        frames.append(_read_one(Path(path)))

    combined = pd.concat(frames, ignore_index=True)
    logging.info("Loaded %d rows from %d files", len(combined), len(paths))
    return combined


def normalise_flight_id(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with the shared key stored as integer ``flight_id``."""

    for alias in FLIGHT_ID_ALIASES:
        if alias in df.columns:
            out = df.rename(columns={alias: "flight_id"})
            out["flight_id"] = pd.to_numeric(out["flight_id"], errors="coerce")
            missing = int(out["flight_id"].isna().sum())
            if missing:
                logging.warning("Dropping %d rows without a usable flight identifier", missing)
                out = out.dropna(subset=["flight_id"])
            out["flight_id"] = out["flight_id"].astype("int64")
            return out
    raise RecordFormatError(f"No flight identifier column found; expected one of {FLIGHT_ID_ALIASES}")


def ensure_required_columns(df: pd.DataFrame, required: Iterable[str]) -> pd.DataFrame:
    """Validate that the DataFrame contains the required columns."""

    missing = [col for col in required if col not in df.columns]
    if missing:
        raise RecordFormatError(f"Missing required columns: {missing}")
    return df


def _timestamps_to_millis(series: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(series):
        return series.astype("int64")
    parsed = pd.to_datetime(series, utc=True, errors="coerce")
    if parsed.isna().any():
        raise RecordFormatError("Tracking timestamps contain unparseable values")
    return (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)


def _optional(value: object) -> Optional[object]:
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NA or value is pd.NaT:
        return None
    return value


def _optional_float(value: object) -> Optional[float]:
    value = _optional(value)
    return float(value) if value is not None else None


def _optional_str(value: object) -> Optional[str]:
    value = _optional(value)
    return str(value) if value is not None else None


def tracks_from_frame(df: pd.DataFrame) -> Dict[int, ActualTrajectory]:
    """Group tracking rows into chronologically ordered actual trajectories."""

    df = ensure_required_columns(normalise_flight_id(df), TRACK_REQUIRED_COLUMNS)
    df = df.copy()
    df["timestamp"] = _timestamps_to_millis(df["timestamp"])
    callsign_col = next((c for c in ("callsign", "indicative") if c in df.columns), None)

    tracks: Dict[int, ActualTrajectory] = {}
    for flight_id, flight in df.groupby("flight_id", sort=True):
        flight_sorted = flight.sort_values("timestamp", kind="stable")
        points = [
            TrackingPoint(
                latitude=float(row.latitude),
                longitude=float(row.longitude),
                flight_level=float(row.flight_level),
                timestamp_ms=int(row.timestamp),
                sequence=seq,
            )
            for seq, row in enumerate(flight_sorted.itertuples(index=False))
        ]
        callsign = _optional_str(flight_sorted[callsign_col].iloc[0]) if callsign_col else None
        tracks[int(flight_id)] = ActualTrajectory(int(flight_id), tuple(points), callsign=callsign)

    logging.info("Built %d actual trajectories", len(tracks))
    return tracks


def routes_from_frame(df: pd.DataFrame) -> Dict[int, PredictedTrajectory]:
    """Group route rows into predicted trajectories ordered by ``sequence``."""

    df = df.rename(columns={k: v for k, v in ROUTE_COLUMN_ALIASES.items() if k in df.columns and v not in df.columns})
    df = ensure_required_columns(normalise_flight_id(df), ROUTE_REQUIRED_COLUMNS)

    routes: Dict[int, PredictedTrajectory] = {}
    for flight_id, flight in df.groupby("flight_id", sort=True):
        if "sequence" in flight.columns:
            flight = flight.sort_values("sequence", kind="stable")
        records = flight.to_dict(orient="records")
        points = []
        for seq, rec in enumerate(records):
            method = _optional_str(rec.get("interpolation_method")) or InterpolationMethod.NONE.value
            points.append(
                RoutePoint(
                    latitude=float(rec["latitude"]),
                    longitude=float(rec["longitude"]),
                    altitude_m=_optional_float(rec.get("altitude_m")),
                    level_m=_optional_float(rec.get("level_m")),
                    eet_minutes=_optional_float(rec.get("eet_minutes")),
                    ground_speed=_optional_float(rec.get("ground_speed")),
                    waypoint_id=_optional_str(rec.get("waypoint_id")),
                    waypoint_type=_optional_str(rec.get("waypoint_type")),
                    sequence=seq,
                    interpolated=bool(_optional(rec.get("interpolated")) or False),
                    interpolation_method=InterpolationMethod(method),
                )
            )

        first = records[0]
        departure = _optional(first.get("departure_time"))
        arrival = _optional(first.get("arrival_time"))
        routes[int(flight_id)] = PredictedTrajectory(
            flight_id=int(flight_id),
            points=tuple(points),
            callsign=_optional_str(first.get("callsign")),
            origin=_optional_str(first.get("origin")),
            destination=_optional_str(first.get("destination")),
            eet_budget_minutes=_optional_float(first.get("eet_budget_minutes")),
            departure_time=to_utc(departure) if departure is not None else None,
            arrival_time=to_utc(arrival) if arrival is not None else None,
        )

    logging.info("Built %d predicted trajectories", len(routes))
    return routes


def routes_to_frame(trajectories: Iterable[PredictedTrajectory]) -> pd.DataFrame:
    """Flatten predicted trajectories to one row per route point."""

    rows = []
    for traj in trajectories:
        for point in traj.points:
            rows.append(
                {
                    "flight_id": traj.flight_id,
                    "callsign": traj.callsign,
                    "origin": traj.origin,
                    "destination": traj.destination,
                    "sequence": point.sequence,
                    "latitude": point.latitude,
                    "longitude": point.longitude,
                    "altitude_m": point.altitude_m,
                    "level_m": point.level_m,
                    "eet_minutes": point.eet_minutes,
                    "ground_speed": point.ground_speed,
                    "waypoint_id": point.waypoint_id,
                    "waypoint_type": point.waypoint_type,
                    "interpolated": point.interpolated,
                    "interpolation_method": point.interpolation_method.value,
                }
            )
    return pd.DataFrame(rows)


def save_dataframe(df: pd.DataFrame, path: str | Path) -> None:
    """Persist a DataFrame to CSV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logging.info("Saved %d rows to %s", len(df), path)
