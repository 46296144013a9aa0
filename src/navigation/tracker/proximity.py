# proximity.py
# Stateless distance checks for a single position fix.
# Reads the store, never mutates it.

import logging

import numpy as np

from .geo_utils import haversine_distance, haversine_many
from .models import NearbyWaypoint, PositionFix, ProximityResult, ZoneThresholds
from .waypoint_store import WaypointStore

logger = logging.getLogger(__name__)


def evaluate(position: PositionFix, store: WaypointStore, thresholds: ZoneThresholds) -> ProximityResult:
    """
    Compare a position fix against the current target and all other pending waypoints.

    Args:
        position:   Latest position fix.
        store:      Route holder; read only.
        thresholds: Zone radii in metres.

    Returns:
        ProximityResult. arrived_at_current is inclusive at thresholds.arrival;
        nearest_pending_other breaks distance ties by lowest route index.
    """
    current_index = store.current_target_index()
    if current_index is None:
        return ProximityResult(arrived_at_current=False)

    target = store.waypoint_at(current_index)
    dist = haversine_distance(
        position.latitude, position.longitude,
        target.latitude, target.longitude,
    )

    others = [
        (i, wp) for i, wp in enumerate(store)
        if wp.is_pending and i != current_index
    ]
    nearest = None
    if others:
        distances = haversine_many(
            position.latitude, position.longitude,
            np.array([wp.latitude for _, wp in others]),
            np.array([wp.longitude for _, wp in others]),
        )
        # argmin returns the first minimum; others is in route order
        best = int(np.argmin(distances))
        index, wp = others[best]
        nearest = NearbyWaypoint(index=index, distance_m=float(distances[best]), name=wp.name)

    logger.debug(
        f"Target #{current_index} '{target.name}' at {dist:.1f} m; "
        f"nearest other: {nearest}"
    )
    return ProximityResult(
        arrived_at_current=dist <= thresholds.arrival,
        nearest_pending_other=nearest,
        distance_to_target=dist,
        zone=thresholds.zone_for(dist),
    )
