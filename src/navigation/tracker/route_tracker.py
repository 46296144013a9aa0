# route_tracker.py
# State machine that advances the current-target pointer through the route.
# Waypoints go pending -> reached or pending -> skipped; both are terminal.

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from .errors import NoActiveTargetError, TargetNotPendingError
from .models import (
    EventType,
    ProgressStats,
    StepOutcome,
    TrackerEvent,
    Waypoint,
    WaypointStatus,
    ZoneThresholds,
)
from .waypoint_store import WaypointStore

logger = logging.getLogger(__name__)

EventSink = Callable[[TrackerEvent], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProgressionEngine:
    """
    Drives the target pointer: tracking(index) or completed.

    Usage:
        engine = ProgressionEngine(store, config.zone_thresholds, emit=listener)
        store.load_route(inputs)        # engine resets to tracking(0)

        # On arrival / user action:
        engine.mark_reached()
        engine.skip()

    Zone thresholds are pulled from thresholds_provider each time a new
    target becomes current and kept in active_thresholds until the next one.
    """

    def __init__(
        self,
        store: WaypointStore,
        thresholds_provider: Callable[[], ZoneThresholds],
        emit: Optional[EventSink] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._thresholds_provider = thresholds_provider
        self._emit_sink = emit
        self._clock = clock

        self._stats = ProgressStats()
        self._log: List[Waypoint] = []
        self._active_thresholds: ZoneThresholds = thresholds_provider()

        store.add_load_listener(self._on_route_loaded)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def stats(self) -> ProgressStats:
        return self._stats

    @property
    def reached_log(self) -> Tuple[Waypoint, ...]:
        return tuple(self._log)

    @property
    def active_thresholds(self) -> ZoneThresholds:
        return self._active_thresholds

    @property
    def is_tracking(self) -> bool:
        return self._store.current_target_index() is not None

    @property
    def is_completed(self) -> bool:
        return self._store.is_loaded and self._store.current_target_index() is None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_reached(self) -> StepOutcome:
        """Resolve the current target as reached and move on."""
        index = self._store.current_target_index()
        if index is None:
            return StepOutcome(applied=False, error=NoActiveTargetError())

        wp = self._store.waypoint_at(index)
        wp.status = WaypointStatus.REACHED
        wp.reached_at = self._clock()
        self._log.append(wp.snapshot())
        self._stats = replace(
            self._stats,
            reached=self._stats.reached + 1,
            remaining=self._stats.remaining - 1,
        )
        logger.info(f"Waypoint #{index} '{wp.name}' reached.")
        self._emit(EventType.WAYPOINT_REACHED, wp, index)
        self._emit(EventType.STATS_CHANGED)
        return self._advance_from(index)

    def skip(self) -> StepOutcome:
        """Resolve the current target as skipped and move on."""
        index = self._store.current_target_index()
        if index is None:
            return StepOutcome(applied=False, error=NoActiveTargetError())

        wp = self._store.waypoint_at(index)
        wp.status = WaypointStatus.SKIPPED
        self._stats = replace(
            self._stats,
            skipped=self._stats.skipped + 1,
            remaining=self._stats.remaining - 1,
        )
        logger.info(f"Waypoint #{index} '{wp.name}' skipped.")
        self._emit(EventType.WAYPOINT_SKIPPED, wp, index)
        self._emit(EventType.STATS_CHANGED)
        return self._advance_from(index)

    def set_current_target(self, index: int) -> None:
        """
        Point tracking at index and re-read the zone thresholds.

        Raises:
            IndexOutOfRangeError:  index is not a valid route position.
            TargetNotPendingError: the waypoint at index is already resolved.
        """
        wp = self._store.waypoint_at(index)
        if not wp.is_pending:
            raise TargetNotPendingError(index, wp.status.value)
        self._store.set_current_index(index)
        self._active_thresholds = self._thresholds_provider()
        logger.info(f"Now tracking #{index} '{wp.name}'.")
        self._emit(EventType.TARGET_CHANGED, wp, index)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _advance_from(self, index: int) -> StepOutcome:
        next_index = self._store.next_pending_after(index)
        if next_index is None:
            self._store.set_current_index(None)
            logger.info("All waypoints resolved. Route completed.")
            self._emit(EventType.ROUTE_COMPLETED)
            return StepOutcome(applied=True, index=index, completed=True)

        self.set_current_target(next_index)
        return StepOutcome(applied=True, index=index, next_index=next_index)

    def reset(self) -> None:
        """Drop stats and the reached log (route unloaded)."""
        self._stats = ProgressStats()
        self._log = []

    def _on_route_loaded(self) -> None:
        total = len(self._store)
        self._stats = ProgressStats(total=total, remaining=total)
        self._log = []
        self._emit(EventType.ROUTE_LOADED)
        self._emit(EventType.STATS_CHANGED)
        self.set_current_target(0)

    def _emit(self, event_type: EventType, wp: Optional[Waypoint] = None, index: Optional[int] = None) -> None:
        if self._emit_sink is None:
            return
        self._emit_sink(TrackerEvent(
            type=event_type,
            stats=self._stats,
            waypoint=wp.snapshot() if wp is not None else None,
            index=index,
        ))
