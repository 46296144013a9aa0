# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import NoActiveTargetError


DEFAULT_WAYPOINT_NAME = "Waypoint"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class WaypointStatus(Enum):
    PENDING = "pending"
    REACHED = "reached"
    SKIPPED = "skipped"


class Zone(Enum):
    """Concentric proximity zone around the current target."""
    ARRIVAL = "arrival"
    MID     = "mid"
    OUTER   = "outer"
    OUTSIDE = "outside"


class RouteStatus(Enum):
    INACTIVE       = "inactive"
    PROGRESSING    = "progressing"
    WAYPOINT_HIT   = "waypoint_hit"
    SWITCH_OFFERED = "switch_offered"
    FINISHED       = "finished"


class EventType(Enum):
    ROUTE_LOADED     = "route_loaded"
    STATS_CHANGED    = "stats_changed"
    TARGET_CHANGED   = "target_changed"
    WAYPOINT_REACHED = "waypoint_reached"
    WAYPOINT_SKIPPED = "waypoint_skipped"
    ROUTE_COMPLETED  = "route_completed"
    PROMPT_OFFERED   = "prompt_offered"
    PROMPT_RESOLVED  = "prompt_resolved"
    POSITION_ERROR   = "position_error"


# ---------------------------------------------------------------------------
# Configuration values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZoneThresholds:
    """Outer / mid / arrival radii in metres. Ordering is not enforced."""
    outer: float
    mid: float
    arrival: float

    def zone_for(self, distance_m: float) -> Zone:
        """Innermost zone containing distance_m (boundaries inclusive)."""
        if distance_m <= self.arrival:
            return Zone.ARRIVAL
        if distance_m <= self.mid:
            return Zone.MID
        if distance_m <= self.outer:
            return Zone.OUTER
        return Zone.OUTSIDE


# ---------------------------------------------------------------------------
# Waypoints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WaypointInput:
    """One decoded record from an external route file."""
    latitude: float
    longitude: float
    name: str = DEFAULT_WAYPOINT_NAME
    elevation: Optional[float] = None
    time: Optional[str] = None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "WaypointInput":
        """Accepts both short (lat/lon/ele) and long key names."""
        lat = d["lat"] if "lat" in d else d["latitude"]
        lon = d["lon"] if "lon" in d else d["longitude"]
        ele = d.get("ele", d.get("elevation"))
        return WaypointInput(
            latitude=float(lat),
            longitude=float(lon),
            name=d.get("name") or DEFAULT_WAYPOINT_NAME,
            elevation=float(ele) if ele is not None else None,
            time=d.get("time"),
        )

    def to_dict(self) -> dict:
        return {
            "lat": self.latitude,
            "lon": self.longitude,
            "name": self.name,
            "ele": self.elevation,
            "time": self.time,
        }


@dataclass
class Waypoint:
    """A route entry plus its progression status."""
    latitude: float
    longitude: float
    name: str
    elevation: Optional[float] = None
    source_timestamp: Optional[str] = None
    status: WaypointStatus = WaypointStatus.PENDING
    reached_at: Optional[datetime] = None

    @staticmethod
    def from_input(wp: WaypointInput) -> "Waypoint":
        return Waypoint(
            latitude=wp.latitude,
            longitude=wp.longitude,
            name=wp.name or DEFAULT_WAYPOINT_NAME,
            elevation=wp.elevation,
            source_timestamp=wp.time,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is WaypointStatus.PENDING

    def snapshot(self) -> "Waypoint":
        """Detached copy, safe to hand to listeners."""
        return replace(self)

    def to_log_record(self) -> dict:
        """Self-describing record used by the reached-log export."""
        record: Dict[str, Any] = {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
        if self.elevation is not None:
            record["elevation"] = self.elevation
        if self.source_timestamp is not None:
            record["time"] = self.source_timestamp
        record["reached_at"] = self.reached_at.isoformat() if self.reached_at else None
        return record


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressStats:
    total: int = 0
    reached: int = 0
    remaining: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "reached": self.reached,
            "remaining": self.remaining,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class StepOutcome:
    """Result of mark_reached() / skip(). applied=False means nothing changed."""
    applied: bool
    index: Optional[int] = None
    next_index: Optional[int] = None
    completed: bool = False
    error: Optional["NoActiveTargetError"] = None


# ---------------------------------------------------------------------------
# Position / proximity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionFix:
    """A single reading from the location source."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None       # metres
    timestamp_ms: Optional[int] = None     # Unix epoch milliseconds


@dataclass(frozen=True)
class NearbyWaypoint:
    index: int
    distance_m: float
    name: str


@dataclass(frozen=True)
class ProximityResult:
    arrived_at_current: bool
    nearest_pending_other: Optional[NearbyWaypoint] = None
    distance_to_target: Optional[float] = None
    zone: Optional[Zone] = None


@dataclass(frozen=True)
class PromptState:
    candidate_index: int
    deadline: float                         # monotonic seconds


# ---------------------------------------------------------------------------
# Events / per-fix result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackerEvent:
    type: EventType
    stats: ProgressStats
    waypoint: Optional[Waypoint] = None
    index: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProgressResult:
    """Returned by WaypointNavigator.update() every GPS update."""
    status: RouteStatus
    message: str
    stats: ProgressStats = field(default_factory=ProgressStats)
    distance_to_target: Optional[float] = None   # metres
    bearing_to_target: Optional[float] = None    # degrees
    zone: Optional[Zone] = None
    current_waypoint: Optional[Waypoint] = None
