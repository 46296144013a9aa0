# waypoint_store.py
# Owns the live route: ordered waypoints, their status and the target pointer.
# Only ProgressionEngine changes status / pointer; only the switch prompt swaps.

import logging
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import EmptyRouteError, IndexOutOfRangeError, InvalidWaypointError
from .geo_utils import path_length
from .models import Waypoint, WaypointInput

logger = logging.getLogger(__name__)

RouteInput = Sequence[Union[WaypointInput, Mapping[str, Any]]]


def normalize_route(waypoints: RouteInput) -> List[WaypointInput]:
    """
    Coerce decoded route records (dicts or WaypointInput) into WaypointInput.

    Raises:
        InvalidWaypointError: a record lacks usable coordinates.
    """
    result: List[WaypointInput] = []
    for position, raw in enumerate(waypoints):
        if isinstance(raw, WaypointInput):
            result.append(raw)
            continue
        try:
            result.append(WaypointInput.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidWaypointError(
                f"Waypoint #{position} has missing or invalid coordinates.",
                details={"position": position, "reason": str(e)},
            ) from e
    return result


class WaypointStore:
    """
    Holds exactly one route at a time.

    Loading a route replaces the previous one. Replace listeners run first,
    while the old route is still in place (a pending prompt is withdrawn
    against the waypoints it was offered for). Load listeners run afterwards
    so owners can rebuild derived state (stats, reached log, target).
    """

    def __init__(self) -> None:
        self._route: List[Waypoint] = []
        self._current_index: Optional[int] = None
        self._replace_listeners: List[Callable[[], None]] = []
        self._load_listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_replace_listener(self, listener: Callable[[], None]) -> None:
        self._replace_listeners.append(listener)

    def add_load_listener(self, listener: Callable[[], None]) -> None:
        self._load_listeners.append(listener)

    def load_route(self, waypoints: RouteInput) -> None:
        """Replace the current route. All waypoints start as pending."""
        if not waypoints:
            raise EmptyRouteError()

        route = [Waypoint.from_input(wp) for wp in normalize_route(waypoints)]
        for listener in self._replace_listeners:
            listener()

        self._route = route
        self._current_index = 0
        logger.info(f"Route loaded ({len(route)} waypoints).")

        for listener in self._load_listeners:
            listener()

    def clear(self) -> None:
        """Drop the route entirely (no target, nothing loaded)."""
        self._route = []
        self._current_index = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return bool(self._route)

    def __len__(self) -> int:
        return len(self._route)

    def __iter__(self) -> Iterator[Waypoint]:
        return iter(self._route)

    @property
    def waypoints(self) -> Tuple[Waypoint, ...]:
        return tuple(self._route)

    def current_target_index(self) -> Optional[int]:
        return self._current_index

    def current_target(self) -> Optional[Waypoint]:
        if self._current_index is None:
            return None
        return self._route[self._current_index]

    def waypoint_at(self, index: int) -> Waypoint:
        self._check_index(index)
        return self._route[index]

    def pending_indices(self) -> List[int]:
        return [i for i, wp in enumerate(self._route) if wp.is_pending]

    def next_pending_after(self, index: int) -> Optional[int]:
        """First pending index strictly greater than index, in current route order."""
        for i in range(index + 1, len(self._route)):
            if self._route[i].is_pending:
                return i
        return None

    def route_length_m(self) -> float:
        return path_length((wp.latitude, wp.longitude) for wp in self._route)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_current_index(self, index: Optional[int]) -> None:
        """Move the target pointer. None means the route is completed."""
        if index is not None:
            self._check_index(index)
        self._current_index = index

    def swap_positions(self, i: int, j: int) -> None:
        self._check_index(i)
        self._check_index(j)
        self._route[i], self._route[j] = self._route[j], self._route[i]

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self._route):
            raise IndexOutOfRangeError(index, len(self._route))
