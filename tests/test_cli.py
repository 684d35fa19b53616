import pandas as pd
import yaml

import cli
from trajectory_accuracy.io import routes_to_frame
from trajectory_accuracy.simulator import GeodesicRouteSimulator


def _tracks_frame(tracks):
    return pd.DataFrame(
        [
            {
                "plan_id": t.flight_id,
                "latitude": p.latitude,
                "longitude": p.longitude,
                "flight_level": p.flight_level,
                "timestamp": p.timestamp_ms,
            }
            for t in tracks
            for p in t.points
        ]
    )


def test_each_flight_is_densified_once(tmp_path, monkeypatch, route, track):
    (tmp_path / "tracks").mkdir()
    (tmp_path / "routes").mkdir()
    tracks = [track(flight_id=1), track(flight_id=2, start=(-23.5, -46.6564))]
    _tracks_frame(tracks).to_csv(tmp_path / "tracks" / "tracks.csv", index=False)
    routes_to_frame([route(flight_id=1), route(flight_id=2)]).to_csv(tmp_path / "routes" / "routes.csv", index=False)

    config_path = tmp_path / "analysis.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "input": {
                    "tracks_glob": str(tmp_path / "tracks" / "*.csv"),
                    "routes_glob": str(tmp_path / "routes" / "*.csv"),
                },
                "output": {"dir": str(tmp_path / "out")},
                "logging": {"dir": str(tmp_path / "logs")},
            }
        ),
        encoding="utf-8",
    )

    sessions = []

    def counting_factory(session_start):
        sessions.append(session_start)
        return GeodesicRouteSimulator(session_start)

    monkeypatch.setattr(cli, "GeodesicRouteSimulator", counting_factory)
    cli.main(str(config_path))

    assert len(sessions) == 2
    outcomes = pd.read_csv(tmp_path / "out" / "densification_outcomes.csv")
    assert outcomes["flight_id"].tolist() == [1, 2]
    assert outcomes["status"].tolist() == ["Success", "Success"]
    assert len(pd.read_csv(tmp_path / "out" / "densified_routes.csv")) == 200
    assert len(pd.read_csv(tmp_path / "out" / "accuracy_by_flight.csv")) == 1
