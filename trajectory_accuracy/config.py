"""Configuration helpers for the trajectory accuracy pipeline.

Provides YAML loading, nested lookups with defaults, and the strongly-typed
:class:`AnalysisConfig` consumed by every pipeline component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .exceptions import ConfigError

DEFAULT_TOLERANCE_WINDOWS_MIN: Tuple[float, ...] = (3.0, 5.0, 15.0)


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file."""

    with Path(path).open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_nested(config: Dict[str, Any], keys: list[str], default: Any) -> Any:
    """Retrieve a nested value from a config dict with a default."""

    current: Any = config
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


@dataclass
class AnalysisConfig:
    """Strongly-typed configuration for resolution, resampling and scoring."""

    qualifying_routes: Optional[List[Tuple[str, str]]] = None
    bidirectional_routes: bool = True
    require_airport_endpoints: bool = True
    geographic_filter: bool = True
    max_endpoint_distance_nm: float = 2.0
    max_endpoint_flight_level: float = 4.0
    default_hop_minutes: float = 5.0
    tolerance_windows_min: Tuple[float, ...] = DEFAULT_TOLERANCE_WINDOWS_MIN
    max_workers: int = 4
    flight_timeout_s: Optional[float] = None
    logging: Dict[str, Any] = field(default_factory=dict)
    input: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_endpoint_distance_nm < 0:
            raise ConfigError("max_endpoint_distance_nm must be non-negative")
        if self.default_hop_minutes <= 0:
            raise ConfigError("default_hop_minutes must be positive")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1")
        if self.flight_timeout_s is not None and self.flight_timeout_s <= 0:
            raise ConfigError("flight_timeout_s must be positive when set")
        windows = tuple(sorted(float(w) for w in self.tolerance_windows_min))
        if not windows or windows[0] < 0:
            raise ConfigError("tolerance_windows_min needs at least one non-negative window")
        self.tolerance_windows_min = windows

    @property
    def log_level(self) -> int:
        level_name = str(self.logging.get("level", "INFO")).upper()
        return getattr(logging, level_name, logging.INFO)


def config_from_dict(cfg: Dict[str, Any]) -> AnalysisConfig:
    """Build an :class:`AnalysisConfig` from a parsed YAML mapping."""

    routes_raw = get_nested(cfg, ["routes", "qualifying"], None)
    routes: Optional[List[Tuple[str, str]]] = None
    if routes_raw:
        routes = []
        for item in routes_raw:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ConfigError(f"Qualifying route entries must be [origin, destination] pairs, got {item!r}")
            routes.append((str(item[0]).upper(), str(item[1]).upper()))

    timeout = get_nested(cfg, ["batch", "flight_timeout_s"], None)
    return AnalysisConfig(
        qualifying_routes=routes,
        bidirectional_routes=bool(get_nested(cfg, ["routes", "bidirectional"], True)),
        require_airport_endpoints=bool(get_nested(cfg, ["routes", "require_airport_endpoints"], True)),
        geographic_filter=bool(get_nested(cfg, ["geographic", "enabled"], True)),
        max_endpoint_distance_nm=float(get_nested(cfg, ["geographic", "max_distance_nm"], 2.0)),
        max_endpoint_flight_level=float(get_nested(cfg, ["geographic", "max_flight_level"], 4.0)),
        default_hop_minutes=float(get_nested(cfg, ["resampling", "default_hop_minutes"], 5.0)),
        tolerance_windows_min=tuple(
            get_nested(cfg, ["punctuality", "tolerance_windows_min"], list(DEFAULT_TOLERANCE_WINDOWS_MIN))
        ),
        max_workers=int(get_nested(cfg, ["batch", "max_workers"], 4)),
        flight_timeout_s=float(timeout) if timeout is not None else None,
        logging=cfg.get("logging", {}) or {},
        input=cfg.get("input", {}) or {},
        output=cfg.get("output", {}) or {},
    )


def resolve_config(path: str | Path | None = None) -> AnalysisConfig:
    """Return the configuration stored at ``path`` or the built-in defaults."""

    if path is None:
        return AnalysisConfig()
    return config_from_dict(load_config(path))
