# navigator.py
# Public entry point for the waypoint tracker.
# Owns no business logic; delegates everything to specialist modules.

import logging
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .errors import EmptyRouteError, PositionSourceError
from .geo_utils import calculate_bearing, haversine_distance
from .models import (
    EventType,
    PositionFix,
    ProgressResult,
    ProgressStats,
    PromptState,
    RouteStatus,
    StepOutcome,
    TrackerEvent,
    Waypoint,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .position_feed import PositionFeed, Subscription
from .proximity import evaluate
from .route_tracker import ProgressionEngine, utc_now
from .switch_prompt import Scheduler, SwitchPromptCoordinator, thread_timer
from .waypoint_store import RouteInput, WaypointStore, normalize_route

logger = logging.getLogger(__name__)

EventListener = Callable[[TrackerEvent], None]


class WaypointNavigator:
    """
    High-level waypoint tracking facade.

    Typical lifecycle:
        nav = WaypointNavigator(NavConfig(arrival_threshold_m=30))
        nav.subscribe(print)
        nav.load_route(waypoints)

        # GPS loop:
        result = nav.update(PositionFix(lat, lon))

        # Or let a feed drive it:
        nav.attach_feed(PositionFeed(source)).start()

    Every public method runs under one re-entrant lock, shared with the
    switch-prompt countdown, so no caller ever sees a half-applied swap.

    Args:
        config:    Optional NavConfig; defaults to NavConfig().
        scheduler: Countdown scheduler for switch prompts.
        monotonic: Monotonic clock used for prompt deadlines.
        clock:     Wall clock used for reached timestamps (timezone-aware).
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        *,
        scheduler: Scheduler = thread_timer,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or NavConfig()
        self._lock = threading.RLock()
        self._listeners: List[EventListener] = []
        self._position_error: Optional[PositionSourceError] = None
        self._feed_subscription: Optional[Subscription] = None

        # Specialist modules
        self._store = WaypointStore()
        self._engine = ProgressionEngine(
            self._store,
            self.config.zone_thresholds,
            emit=self._dispatch,
            clock=clock,
        )
        self._switch = SwitchPromptCoordinator(
            self._store,
            self._engine,
            timeout_s=self.config.switch_prompt_timeout_s,
            emit=self._dispatch,
            lock=self._lock,
            scheduler=scheduler,
            clock=monotonic,
        )
        self._logger = NavLogger(self.config)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register an event listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _dispatch(self, event: TrackerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed on {event.type.value} event.")

    # ------------------------------------------------------------------
    # Route control
    # ------------------------------------------------------------------

    def load_route(self, waypoints: RouteInput) -> int:
        """
        Replace the active route and start tracking its first waypoint.

        Args:
            waypoints: Decoded route records, in route order.

        Returns:
            Number of waypoints loaded.

        Raises:
            EmptyRouteError:      waypoints is empty.
            InvalidWaypointError: a record has no usable coordinates.
        """
        inputs = normalize_route(waypoints)
        with self._lock:
            self._position_error = None
            self._store.load_route(inputs)
        self._logger.save_route(inputs)
        logger.info(f"Route ready: {len(inputs)} waypoints, {self.route_length_m:.0f} m.")
        return len(inputs)

    def load_route_file(self, filepath: str) -> int:
        """
        Load a JSON route file written by save_route (or a bare record list).

        Raises:
            EmptyRouteError:      file unreadable or without waypoints.
            InvalidWaypointError: a record has missing or invalid coordinates.
        """
        waypoints = self._logger.load_route(filepath)
        if waypoints is None:
            raise EmptyRouteError(f"Could not read route file {filepath}.")
        return self.load_route(waypoints)

    def unload(self) -> None:
        """Stop tracking: detach the feed and drop the route and all derived state."""
        with self._lock:
            self.detach_feed()
            self._switch.reset()
            self._store.clear()
            self._engine.reset()
            self._position_error = None
        logger.info("Route unloaded.")

    # ------------------------------------------------------------------
    # Position feed
    # ------------------------------------------------------------------

    def attach_feed(self, feed: PositionFeed) -> PositionFeed:
        """Subscribe update() / report_error() to feed. Replaces any previous feed."""
        self.detach_feed()
        self._feed_subscription = feed.subscribe(self.update, self.report_error)
        return feed

    def detach_feed(self) -> None:
        if self._feed_subscription is not None:
            self._feed_subscription.cancel()
            self._feed_subscription = None

    # ------------------------------------------------------------------
    # GPS update: call this on every position fix
    # ------------------------------------------------------------------

    def update(self, position: PositionFix) -> ProgressResult:
        """
        Process a new position fix and return the current tracking status.

        Arrival at the current target marks it reached automatically; being
        inside arrival range of another pending waypoint may offer a switch.

        Args:
            position: Current position fix.

        Returns:
            ProgressResult containing RouteStatus, message and target info.
        """
        with self._lock:
            self._position_error = None
            result = self._process(position)
        self._logger.log_event(result, position)
        return result

    def _process(self, position: PositionFix) -> ProgressResult:
        if not self._store.is_loaded:
            return ProgressResult(
                status=RouteStatus.INACTIVE,
                message="No route loaded.",
                stats=self._engine.stats,
            )
        if self._engine.is_completed:
            return ProgressResult(
                status=RouteStatus.FINISHED,
                message="All waypoints reached! Good job!",
                stats=self._engine.stats,
            )

        proximity = evaluate(position, self._store, self._engine.active_thresholds)
        target = self._store.current_target()
        bearing = calculate_bearing(
            position.latitude, position.longitude,
            target.latitude, target.longitude,
        )

        # 1. Arrived at current target
        if proximity.arrived_at_current:
            outcome = self._engine.mark_reached()
            self._switch.cancel()
            if outcome.completed:
                return ProgressResult(
                    status=RouteStatus.FINISHED,
                    message="All waypoints reached! Good job!",
                    stats=self._engine.stats,
                    distance_to_target=proximity.distance_to_target,
                    zone=proximity.zone,
                    current_waypoint=target.snapshot(),
                )
            # Target fields describe the new target, not the one just reached
            next_wp = self._store.current_target()
            next_distance = haversine_distance(
                position.latitude, position.longitude,
                next_wp.latitude, next_wp.longitude,
            )
            return ProgressResult(
                status=RouteStatus.WAYPOINT_HIT,
                message=f"Reached {target.name}. Next: {next_wp.name}.",
                stats=self._engine.stats,
                distance_to_target=next_distance,
                bearing_to_target=calculate_bearing(
                    position.latitude, position.longitude,
                    next_wp.latitude, next_wp.longitude,
                ),
                zone=self._engine.active_thresholds.zone_for(next_distance),
                current_waypoint=next_wp.snapshot(),
            )

        # 2. Closer to another pending waypoint
        if self._switch.consider(position, proximity):
            candidate = proximity.nearest_pending_other
            return ProgressResult(
                status=RouteStatus.SWITCH_OFFERED,
                message=f"{candidate.name} is {int(candidate.distance_m)} m away. Switch to it?",
                stats=self._engine.stats,
                distance_to_target=proximity.distance_to_target,
                bearing_to_target=bearing,
                zone=proximity.zone,
                current_waypoint=target.snapshot(),
            )

        # 3. Still heading for the current target
        return ProgressResult(
            status=RouteStatus.PROGRESSING,
            message=f"{int(proximity.distance_to_target)} m to {target.name}.",
            stats=self._engine.stats,
            distance_to_target=proximity.distance_to_target,
            bearing_to_target=bearing,
            zone=proximity.zone,
            current_waypoint=target.snapshot(),
        )

    def report_error(self, error: PositionSourceError) -> None:
        """Record a location-source failure. Tracking state is left untouched."""
        with self._lock:
            self._position_error = error
            logger.warning(f"GPS error ({error.source_code}): {error.message}")
            self._dispatch(TrackerEvent(
                type=EventType.POSITION_ERROR,
                stats=self._engine.stats,
                payload={"code": error.source_code, "message": error.message},
            ))

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def mark_reached(self) -> StepOutcome:
        with self._lock:
            outcome = self._engine.mark_reached()
            if outcome.applied:
                self._switch.cancel()
            return outcome

    def skip(self) -> StepOutcome:
        with self._lock:
            outcome = self._engine.skip()
            if outcome.applied:
                self._switch.cancel()
            return outcome

    def accept_switch(self) -> bool:
        return self._switch.accept()

    def decline_switch(self) -> bool:
        return self._switch.decline()

    def export_log(self, filepath: Optional[str] = None) -> Optional[str]:
        """Write the reached log as JSON. Returns the path, or None if nothing was reached."""
        return self._logger.export_reached_log(self.reached_log, filepath)

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def stats(self) -> ProgressStats:
        return self._engine.stats

    @property
    def reached_log(self) -> Tuple[Waypoint, ...]:
        return self._engine.reached_log

    @property
    def waypoints(self) -> Tuple[Waypoint, ...]:
        with self._lock:
            return tuple(wp.snapshot() for wp in self._store)

    @property
    def current_index(self) -> Optional[int]:
        return self._store.current_target_index()

    @property
    def current_waypoint(self) -> Optional[Waypoint]:
        with self._lock:
            target = self._store.current_target()
            return target.snapshot() if target is not None else None

    @property
    def prompt(self) -> Optional[PromptState]:
        return self._switch.prompt

    def prompt_seconds_left(self) -> Optional[float]:
        return self._switch.seconds_left()

    @property
    def position_error(self) -> Optional[PositionSourceError]:
        """Last source error; cleared by the next good fix."""
        return self._position_error

    @property
    def route_length_m(self) -> float:
        return self._store.route_length_m()

    @property
    def is_active(self) -> bool:
        return self._engine.is_tracking

    @property
    def is_completed(self) -> bool:
        return self._engine.is_completed
