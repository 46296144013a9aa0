"""Shared fixtures: a three-waypoint route, a manual scheduler and fake clocks."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from navigation.tracker.geo_utils import EARTH_RADIUS_M
from navigation.tracker.models import PositionFix, WaypointInput, ZoneThresholds
from navigation.tracker.nav_config import NavConfig


BASE_LAT = 45.0
BASE_LON = 7.0


def north_of(lat: float, lon: float, meters: float) -> PositionFix:
    """Fix `meters` due north of (lat, lon); haversine returns exactly that distance."""
    return PositionFix(lat + math.degrees(meters / EARTH_RADIUS_M), lon, accuracy=5.0)


class ManualHandle:
    def __init__(self, delay_s, callback):
        self.delay_s = delay_s
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Stands in for threading.Timer; tests decide when the countdown fires."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay_s, callback):
        handle = ManualHandle(delay_s, callback)
        self.handles.append(handle)
        return handle

    @property
    def last(self):
        return self.handles[-1]

    def fire_pending(self):
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()


class FakeMonotonic:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now


class FakeWallClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.now
        self.now = self.now + timedelta(minutes=1)
        return value


@pytest.fixture
def route():
    return [
        WaypointInput(BASE_LAT, BASE_LON, "W0", 120.0),
        WaypointInput(BASE_LAT + 0.01, BASE_LON, "W1"),
        WaypointInput(BASE_LAT + 0.02, BASE_LON, "W2", 140.0),
    ]


@pytest.fixture
def thresholds():
    return ZoneThresholds(outer=200.0, mid=100.0, arrival=50.0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def config(tmp_path):
    return NavConfig(log_dir=str(tmp_path / "logs"), arrival_threshold_m=50.0)


@pytest.fixture(name="north_of")
def north_of_fixture():
    return north_of
