"""Domain-specific errors for the waypoint tracker."""

from typing import Any, Dict, Optional


def error_response(code: str, message: str, *, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "success": False,
        "error_code": code,
        "error": message,
    }
    if details:
        payload["details"] = details
    return payload


class WaypointTrackerError(Exception):
    code = "WAYPOINT_TRACKER_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        return error_response(self.code, self.message, details=self.details)


class EmptyRouteError(WaypointTrackerError):
    """A route load with zero waypoints (upstream parsing failure)."""
    code = "EMPTY_ROUTE"

    def __init__(self, message: str = "No valid waypoints found in route file.", **kwargs):
        super().__init__(message, **kwargs)


class InvalidWaypointError(WaypointTrackerError):
    code = "INVALID_WAYPOINT"


class IndexOutOfRangeError(WaypointTrackerError, IndexError):
    """Invalid swap / set-target index. Always a caller bug."""
    code = "INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, size: int):
        super().__init__(
            f"Waypoint index {index} out of range for route of {size}.",
            details={"index": index, "size": size},
        )
        self.index = index
        self.size = size


class TargetNotPendingError(WaypointTrackerError, ValueError):
    """Set-target on a waypoint that is already reached or skipped. Always a caller bug."""
    code = "TARGET_NOT_PENDING"

    def __init__(self, index: int, status: str):
        super().__init__(
            f"Waypoint #{index} is {status}; only pending waypoints can become the target.",
            details={"index": index, "status": status},
        )
        self.index = index
        self.status = status


class NoActiveTargetError(WaypointTrackerError):
    """Advance / skip requested while the route is completed. Reported, not raised."""
    code = "NO_ACTIVE_TARGET"

    def __init__(self, message: str = "No active waypoint; the route is completed or not loaded.", **kwargs):
        super().__init__(message, **kwargs)


class PositionSourceError(WaypointTrackerError):
    """Error delivered by the location source. Never mutates tracking state."""
    code = "POSITION_SOURCE"

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, source_code: int, message: str):
        super().__init__(message, details={"source_code": source_code})
        self.source_code = source_code
