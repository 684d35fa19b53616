"""CLI entry point for the trajectory accuracy pipeline.

Loads recorded tracks and predicted routes, densifies every predicted route to
the density of its track, scores accuracy and punctuality for qualifying
flights, and writes the reports as CSV files.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from trajectory_accuracy.config import config_from_dict, load_config
from trajectory_accuracy.io import load_frames, routes_to_frame, save_dataframe
from trajectory_accuracy.pipeline import FlightAnalysisPipeline
from trajectory_accuracy.simulator import GeodesicRouteSimulator
from trajectory_accuracy.store import InMemoryFlightRecordStore


def configure_logging(log_cfg: Dict[str, object]) -> None:
    """Configure root logger with both file and console handlers."""

    log_dir = Path(log_cfg.get("dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / log_cfg.get("filename", "trajectory_accuracy.log")
    level_name = str(log_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt))
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    root.info("Logging to %s (level=%s)", log_path, level_name)


def main(config_path: str = "config/analysis.yaml") -> None:
    cfg = load_config(config_path)
    config = config_from_dict(cfg)
    configure_logging(config.logging)

    tracks_glob = config.input.get("tracks_glob", "data/tracks/*.csv")
    routes_glob = config.input.get("routes_glob", "data/routes/*.csv")
    store = InMemoryFlightRecordStore.from_frames(load_frames(tracks_glob), load_frames(routes_glob))
    flight_ids = store.flight_ids()
    if not flight_ids:
        logging.warning("No flights found in %s or %s; exiting.", tracks_glob, routes_glob)
        return

    output_dir = Path(config.output.get("dir", "output"))
    output_dir.mkdir(parents=True, exist_ok=True)
    logging.info("Processing %d flights, writing reports to %s", len(flight_ids), output_dir)

    pipeline = FlightAnalysisPipeline(store, config, simulator_factory=GeodesicRouteSimulator)
    summary = pipeline.analyze(flight_ids, persist=True)
    # Flights scored above are already densified and saved.
    processed = {r.flight_id for r in summary.densification.results}
    batch = pipeline.densify_batch([f for f in flight_ids if f not in processed])

    outcomes = pd.concat([summary.densification.to_frame(), batch.to_frame()], ignore_index=True)
    save_dataframe(outcomes.sort_values("flight_id", kind="stable"), output_dir / "densification_outcomes.csv")
    if config.output.get("save_densified_routes", True):
        save_dataframe(routes_to_frame(store.predicted_trajectories()), output_dir / "densified_routes.csv")

    save_dataframe(pd.DataFrame([r.as_record() for r in summary.resolutions]), output_dir / "flight_resolutions.csv")
    save_dataframe(pd.DataFrame([summary.qualification.as_record()]), output_dir / "qualification_summary.csv")
    save_dataframe(summary.accuracy.to_frame(), output_dir / "accuracy_by_flight.csv")
    save_dataframe(pd.DataFrame([summary.accuracy.summary()]), output_dir / "accuracy_summary.csv")
    save_dataframe(summary.punctuality.to_frame(), output_dir / "punctuality_windows.csv")
    save_dataframe(summary.punctuality.details_frame(), output_dir / "punctuality_by_flight.csv")

    for window in summary.punctuality.windows:
        logging.info("Punctuality KPI: %s", window.kpi_text)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Predicted trajectory densification and accuracy analysis.")
    parser.add_argument(
        "-c",
        "--config",
        default="config/analysis.yaml",
        help="Path to YAML config file.",
    )
    args = parser.parse_args()
    main(args.config)
