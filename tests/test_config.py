import logging

import pytest

from trajectory_accuracy.config import AnalysisConfig, config_from_dict, get_nested, resolve_config
from trajectory_accuracy.exceptions import ConfigError


def test_defaults():
    config = resolve_config()

    assert config.qualifying_routes is None
    assert config.max_endpoint_distance_nm == 2.0
    assert config.max_endpoint_flight_level == 4.0
    assert config.tolerance_windows_min == (3.0, 5.0, 15.0)
    assert config.log_level == logging.INFO


def test_yaml_file_is_materialized(tmp_path):
    path = tmp_path / "analysis.yaml"
    path.write_text(
        "routes:\n"
        "  qualifying:\n"
        "    - [sbsp, sbrj]\n"
        "  bidirectional: false\n"
        "punctuality:\n"
        "  tolerance_windows_min: [15, 3]\n"
        "batch:\n"
        "  max_workers: 2\n"
        "  flight_timeout_s: 30\n"
        "logging:\n"
        "  level: debug\n",
        encoding="utf-8",
    )
    config = resolve_config(path)

    assert config.qualifying_routes == [("SBSP", "SBRJ")]
    assert config.bidirectional_routes is False
    assert config.tolerance_windows_min == (3.0, 15.0)
    assert config.max_workers == 2
    assert config.flight_timeout_s == 30.0
    assert config.log_level == logging.DEBUG


def test_invalid_values_raise():
    with pytest.raises(ConfigError):
        AnalysisConfig(max_workers=0)
    with pytest.raises(ConfigError):
        AnalysisConfig(tolerance_windows_min=())
    with pytest.raises(ConfigError):
        config_from_dict({"routes": {"qualifying": [["SBSP"]]}})


def test_get_nested():
    cfg = {"a": {"b": {"c": 1}}}
    assert get_nested(cfg, ["a", "b", "c"], 0) == 1
    assert get_nested(cfg, ["a", "x"], "default") == "default"
