# nav_logger.py
# Handles all file I/O for the tracker.
# Saves routes, the reached-waypoint log and per-fix session events as JSON.

import json
import os
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .errors import EmptyRouteError
from .models import PositionFix, ProgressResult, Waypoint, WaypointInput
from .nav_config import NavConfig
from .waypoint_store import normalize_route

# Standard Python logger, configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists route data, reached waypoints and navigation events to JSON files.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, waypoints: Sequence[WaypointInput]) -> bool:
        """
        Serialize a route to JSON.

        Args:
            waypoints: Route records in route order.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now(timezone.utc).isoformat(),
                "waypoint_count": len(waypoints),
                "waypoints": [wp.to_dict() for wp in waypoints],
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(waypoints)} waypoints).")
            return True
        except IOError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[List[WaypointInput]]:
        """
        Load a route from JSON.

        Accepts either the saved format ({"waypoints": [...]}) or a bare list
        of records with lat/lon/name/ele keys.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            List of WaypointInput, or None if the file could not be read.

        Raises:
            EmptyRouteError:      the file was read but holds no waypoints.
            InvalidWaypointError: a record has missing or invalid coordinates.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = data["waypoints"] if isinstance(data, dict) else data
        except (IOError, KeyError, ValueError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None
        if not isinstance(records, list):
            logger.error(f"Failed to load route from {path}: waypoints is not a list.")
            return None

        waypoints = normalize_route(records)
        if not waypoints:
            raise EmptyRouteError()
        logger.info(f"Route loaded from {path} ({len(waypoints)} waypoints).")
        return waypoints

    # ------------------------------------------------------------------
    # Reached-waypoint log
    # ------------------------------------------------------------------

    def default_log_filepath(self, day: Optional[datetime] = None) -> str:
        day = day or datetime.now(timezone.utc)
        filename = f"{self.config.reached_log_prefix}_{day.date().isoformat()}.json"
        return os.path.join(self.config.log_dir, filename)

    def export_reached_log(self, entries: Sequence[Waypoint], filepath: Optional[str] = None) -> Optional[str]:
        """
        Write reached waypoints, in the order they were reached.

        Args:
            entries:  Reached-log snapshots.
            filepath: Path override; defaults to race_log_YYYY-MM-DD.json in log_dir.

        Returns:
            Path written, or None if there was nothing to write or writing failed.
        """
        if not entries:
            logger.warning("No waypoints reached yet.")
            return None

        path = filepath or self.default_log_filepath()
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump([wp.to_log_record() for wp in entries], f, ensure_ascii=False, indent=2)
        except IOError as e:
            logger.error(f"Failed to write reached log to {path}: {e}")
            return None
        logger.info(f"Reached log saved to {path} ({len(entries)} waypoints).")
        return path

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, result: ProgressResult, position: PositionFix) -> None:
        """
        Append a single navigation event to the session log file.

        Args:
            result:   ProgressResult from WaypointNavigator.update().
            position: The fix that produced it.
        """
        if not self.config.session_logging:
            return
        current = result.current_waypoint
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "lat": position.latitude,
            "lon": position.longitude,
            "accuracy": position.accuracy,
            "fix_time_ms": position.timestamp_ms,
            "status": result.status.value,
            "message": result.message,
            "target": current.name if current else None,
            "distance_to_target": result.distance_to_target,
            "zone": result.zone.value if result.zone else None,
            "stats": result.stats.to_dict(),
        }
        try:
            with open(self.config.session_log_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")
