import random

import pytest

from navigation.tracker.errors import IndexOutOfRangeError, NoActiveTargetError, TargetNotPendingError
from navigation.tracker.models import EventType, ProgressStats, WaypointStatus, ZoneThresholds
from navigation.tracker.route_tracker import ProgressionEngine
from navigation.tracker.waypoint_store import WaypointStore


class ThresholdSettings:
    """Mutable settings; counts how often the engine reads them."""

    def __init__(self):
        self.arrival = 50.0
        self.reads = 0

    def __call__(self):
        self.reads += 1
        return ZoneThresholds(outer=200.0, mid=100.0, arrival=self.arrival)


@pytest.fixture
def events():
    return []


@pytest.fixture
def settings():
    return ThresholdSettings()


@pytest.fixture
def store():
    return WaypointStore()


@pytest.fixture
def engine(store, settings, events, wall_clock, route):
    e = ProgressionEngine(store, settings, emit=events.append, clock=wall_clock)
    store.load_route(route)
    return e


def _assert_consistent(stats: ProgressStats):
    assert stats.reached + stats.skipped + stats.remaining == stats.total


@pytest.mark.parametrize("size", [1, 2, 7])
def test_fresh_route_stats(store, settings, size):
    engine = ProgressionEngine(store, settings)
    store.load_route([{"lat": 45.0 + i * 0.01, "lon": 7.0} for i in range(size)])
    assert engine.stats == ProgressStats(total=size, reached=0, remaining=size, skipped=0)
    assert store.current_target_index() == 0
    assert engine.is_tracking


def test_load_emits_route_loaded_then_target(engine, events):
    types = [e.type for e in events]
    assert types == [EventType.ROUTE_LOADED, EventType.STATS_CHANGED, EventType.TARGET_CHANGED]
    assert events[-1].index == 0
    assert events[-1].waypoint.name == "W0"


def test_reach_then_skip_scenario(engine, store):
    engine.mark_reached()
    assert store.current_target_index() == 1
    assert engine.stats == ProgressStats(total=3, reached=1, remaining=2, skipped=0)

    outcome = engine.skip()
    assert outcome.applied and outcome.next_index == 2
    assert store.current_target_index() == 2
    assert engine.stats == ProgressStats(total=3, reached=1, remaining=1, skipped=1)
    assert store.waypoint_at(1).status is WaypointStatus.SKIPPED


def test_reached_log_snapshots(engine, store):
    engine.mark_reached()
    engine.skip()
    engine.mark_reached()
    log = engine.reached_log
    assert [wp.name for wp in log] == ["W0", "W2"]
    assert all(wp.status is WaypointStatus.REACHED for wp in log)
    assert log[0].reached_at.isoformat() == "2024-05-01T09:00:00+00:00"
    assert log[1].reached_at > log[0].reached_at


def test_completion_emitted_once_and_further_calls_are_noops(engine, store, events):
    engine.mark_reached()
    engine.mark_reached()
    outcome = engine.mark_reached()
    assert outcome.completed
    assert engine.is_completed
    assert store.current_target_index() is None

    stats_before = engine.stats
    log_before = engine.reached_log
    events.clear()
    for call in (engine.skip, engine.mark_reached):
        result = call()
        assert result.applied is False
        assert isinstance(result.error, NoActiveTargetError)
    assert engine.stats == stats_before
    assert engine.reached_log == log_before
    assert events == []


def test_completion_event(engine, events):
    for _ in range(3):
        engine.skip()
    completed = [e for e in events if e.type == EventType.ROUTE_COMPLETED]
    assert len(completed) == 1
    assert completed[0].stats == ProgressStats(total=3, reached=0, remaining=0, skipped=3)


def test_random_sequences_keep_stats_consistent(store, settings):
    rng = random.Random(7)
    engine = ProgressionEngine(store, settings)
    for _ in range(20):
        size = rng.randint(1, 8)
        store.load_route([{"lat": 45.0 + i * 0.01, "lon": 7.0} for i in range(size)])
        _assert_consistent(engine.stats)
        for _ in range(size + 3):
            rng.choice([engine.mark_reached, engine.skip])()
            _assert_consistent(engine.stats)
        assert engine.stats.remaining == 0


def test_thresholds_reread_on_each_new_target(engine, settings):
    assert engine.active_thresholds.arrival == 50.0
    settings.arrival = 20.0
    # unchanged until the target changes
    assert engine.active_thresholds.arrival == 50.0
    engine.skip()
    assert engine.active_thresholds.arrival == 20.0


def test_next_pending_follows_post_swap_order(engine, store):
    store.swap_positions(0, 2)
    engine.set_current_target(0)
    engine.mark_reached()
    assert store.current_target_index() == 1
    assert store.current_target().name == "W1"
    engine.mark_reached()
    assert store.current_target().name == "W0"


def test_set_current_target_rejects_bad_index(engine):
    with pytest.raises(IndexOutOfRangeError):
        engine.set_current_target(3)


def test_set_current_target_rejects_resolved_waypoint(engine, store, events):
    engine.mark_reached()
    engine.skip()
    events.clear()
    for index, status in [(0, "reached"), (1, "skipped")]:
        with pytest.raises(TargetNotPendingError) as exc:
            engine.set_current_target(index)
        assert exc.value.details == {"index": index, "status": status}
    assert store.current_target_index() == 2
    assert events == []


def test_completed_route_cannot_be_reopened(store, settings):
    engine = ProgressionEngine(store, settings)
    store.load_route([{"lat": 45.0, "lon": 7.0, "name": "Only"}])
    engine.mark_reached()
    with pytest.raises(TargetNotPendingError):
        engine.set_current_target(0)
    assert engine.skip().applied is False
    assert store.waypoint_at(0).status is WaypointStatus.REACHED
    assert engine.stats == ProgressStats(total=1, reached=1, remaining=0, skipped=0)
    assert engine.is_completed


def test_reload_resets_everything(engine, store, route):
    engine.mark_reached()
    engine.skip()
    store.load_route(route)
    assert engine.stats == ProgressStats(total=3, reached=0, remaining=3, skipped=0)
    assert engine.reached_log == ()
    assert store.current_target_index() == 0
