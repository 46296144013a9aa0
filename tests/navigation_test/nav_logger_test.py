import json
import os
from datetime import datetime, timezone

import pytest

from navigation.tracker.errors import EmptyRouteError, InvalidWaypointError
from navigation.tracker.models import (
    PositionFix,
    ProgressResult,
    ProgressStats,
    RouteStatus,
    Waypoint,
    WaypointStatus,
    Zone,
)
from navigation.tracker.nav_logger import NavLogger


@pytest.fixture
def nav_logger(config):
    return NavLogger(config)


def _reached(name, elevation=None, minute=0):
    return Waypoint(
        latitude=45.0,
        longitude=7.0,
        name=name,
        elevation=elevation,
        status=WaypointStatus.REACHED,
        reached_at=datetime(2024, 5, 1, 9, minute, tzinfo=timezone.utc),
    )


def test_log_dir_is_created(config, nav_logger):
    assert os.path.isdir(config.log_dir)


def test_export_writes_records_in_reach_order(nav_logger):
    path = nav_logger.export_reached_log([_reached("W2", 140.0), _reached("W0", minute=5)])
    assert os.path.basename(path).startswith("race_log_")
    assert path.endswith(".json")
    with open(path, encoding="utf-8") as f:
        records = json.load(f)
    assert [r["name"] for r in records] == ["W2", "W0"]
    assert records[0]["elevation"] == 140.0
    assert "elevation" not in records[1]
    assert records[1]["reached_at"] == "2024-05-01T09:05:00+00:00"
    assert datetime.fromisoformat(records[0]["reached_at"]).tzinfo is not None


def test_export_without_entries_writes_nothing(nav_logger, config, caplog):
    assert nav_logger.export_reached_log([]) is None
    assert os.listdir(config.log_dir) == []
    assert "No waypoints reached yet." in caplog.text


def test_default_log_name_uses_date(nav_logger, config):
    day = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert nav_logger.default_log_filepath(day) == os.path.join(config.log_dir, "race_log_2024-05-01.json")


def test_saved_route_loads_back(nav_logger, route):
    assert nav_logger.save_route(route) is True
    assert nav_logger.load_route() == route


def test_bare_record_list_is_accepted(nav_logger, tmp_path):
    path = tmp_path / "route.json"
    path.write_text(json.dumps([{"lat": 41.9, "lon": 12.5, "name": "Forum", "ele": 19}]), encoding="utf-8")
    (wp,) = nav_logger.load_route(str(path))
    assert wp.name == "Forum"
    assert wp.elevation == 19.0


def test_route_file_without_waypoints(nav_logger, tmp_path):
    path = tmp_path / "route.json"
    path.write_text(json.dumps({"waypoints": []}), encoding="utf-8")
    with pytest.raises(EmptyRouteError) as exc:
        nav_logger.load_route(str(path))
    assert exc.value.message == "No valid waypoints found in route file."


def test_unreadable_route_file_returns_none(nav_logger, tmp_path):
    assert nav_logger.load_route(str(tmp_path / "missing.json")) is None


def test_malformed_record_names_the_waypoint(nav_logger, tmp_path):
    path = tmp_path / "route.json"
    path.write_text(json.dumps({"waypoints": [
        {"lat": 45.0, "lon": 7.0, "name": "Start"},
        {"lon": 7.0, "name": "Broken"},
    ]}), encoding="utf-8")
    with pytest.raises(InvalidWaypointError) as exc:
        nav_logger.load_route(str(path))
    assert exc.value.message == "Waypoint #1 has missing or invalid coordinates."


def test_route_file_with_non_list_waypoints_returns_none(nav_logger, tmp_path):
    path = tmp_path / "route.json"
    path.write_text(json.dumps({"waypoints": "none"}), encoding="utf-8")
    assert nav_logger.load_route(str(path)) is None


def test_session_events_are_appended(nav_logger, config):
    result = ProgressResult(
        status=RouteStatus.PROGRESSING,
        message="120 m to W1.",
        stats=ProgressStats(total=3, reached=1, remaining=2),
        distance_to_target=120.0,
        zone=Zone.OUTER,
    )
    nav_logger.log_event(result, PositionFix(45.0, 7.0, 4.0, 1714554000000))
    nav_logger.log_event(result, PositionFix(45.0, 7.0))
    with open(config.session_log_filepath, encoding="utf-8") as f:
        lines = [json.loads(line) for line in f]
    assert len(lines) == 2
    assert lines[0]["status"] == "progressing"
    assert lines[0]["zone"] == "outer"
    assert lines[0]["fix_time_ms"] == 1714554000000
    assert lines[0]["stats"] == {"total": 3, "reached": 1, "remaining": 2, "skipped": 0}


def test_session_logging_can_be_disabled(config):
    config.session_logging = False
    NavLogger(config).log_event(
        ProgressResult(status=RouteStatus.INACTIVE, message="No route loaded."),
        PositionFix(45.0, 7.0),
    )
    assert not os.path.exists(config.session_log_filepath)
