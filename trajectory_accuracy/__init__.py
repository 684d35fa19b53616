"""Densification of predicted flight trajectories and accuracy/punctuality scoring."""

from .accuracy import AccuracyAnalyzer, AccuracyReport, FlightAccuracy
from .config import AnalysisConfig, config_from_dict, get_nested, load_config, resolve_config
from .exceptions import (
    ConfigError,
    FlightTimeout,
    PersistenceFailure,
    RecordFormatError,
    TrajectoryAnalysisError,
)
from .models import (
    ActualTrajectory,
    DensificationOutcome,
    DensificationStatus,
    InterpolationMethod,
    PredictedTrajectory,
    RoutePoint,
    TrackingPoint,
)
from .pipeline import AnalysisSummary, BatchResult, FlightAnalysisPipeline, FlightTaskResult
from .punctuality import PunctualityCalculator, PunctualityReport, ToleranceWindowResult
from .resampler import DensificationResult, TrajectoryResampler
from .resolver import FilterReason, FlightPairResolver, PairResolution, PairStatus, QualificationStats
from .simulator import FlightPlan, GeodesicRouteSimulator, KinematicState, PositionSimulator, Segment, SimulationContext
from .store import FlightRecordStore, InMemoryFlightRecordStore

__all__ = [
    "AccuracyAnalyzer",
    "AccuracyReport",
    "ActualTrajectory",
    "AnalysisConfig",
    "AnalysisSummary",
    "BatchResult",
    "ConfigError",
    "DensificationOutcome",
    "DensificationResult",
    "DensificationStatus",
    "FilterReason",
    "FlightAccuracy",
    "FlightAnalysisPipeline",
    "FlightPairResolver",
    "FlightPlan",
    "FlightRecordStore",
    "FlightTaskResult",
    "FlightTimeout",
    "GeodesicRouteSimulator",
    "InMemoryFlightRecordStore",
    "InterpolationMethod",
    "KinematicState",
    "PairResolution",
    "PairStatus",
    "PersistenceFailure",
    "PositionSimulator",
    "PredictedTrajectory",
    "PunctualityCalculator",
    "PunctualityReport",
    "QualificationStats",
    "RecordFormatError",
    "RoutePoint",
    "Segment",
    "SimulationContext",
    "ToleranceWindowResult",
    "TrackingPoint",
    "TrajectoryAnalysisError",
    "TrajectoryResampler",
    "config_from_dict",
    "get_nested",
    "load_config",
    "resolve_config",
]
