"""Waypoint progression tracking: arrival detection, skip/reach transitions and route re-sequencing."""

from .errors import (
    EmptyRouteError,
    IndexOutOfRangeError,
    InvalidWaypointError,
    NoActiveTargetError,
    PositionSourceError,
    TargetNotPendingError,
    WaypointTrackerError,
)
from .models import (
    EventType,
    PositionFix,
    ProgressResult,
    ProgressStats,
    RouteStatus,
    TrackerEvent,
    Waypoint,
    WaypointInput,
    WaypointStatus,
    Zone,
    ZoneThresholds,
)
from .nav_config import NavConfig
from .navigator import WaypointNavigator
from .position_feed import PositionFeed, QueuePositionSource, replay

__all__ = [
    "EmptyRouteError",
    "EventType",
    "IndexOutOfRangeError",
    "InvalidWaypointError",
    "NavConfig",
    "NoActiveTargetError",
    "PositionFeed",
    "PositionFix",
    "PositionSourceError",
    "ProgressResult",
    "ProgressStats",
    "QueuePositionSource",
    "RouteStatus",
    "TargetNotPendingError",
    "TrackerEvent",
    "Waypoint",
    "WaypointInput",
    "WaypointNavigator",
    "WaypointStatus",
    "WaypointTrackerError",
    "Zone",
    "ZoneThresholds",
    "replay",
]
