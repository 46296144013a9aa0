# switch_prompt.py
# Time-boxed offer to promote a closer pending waypoint to current target.
# idle -> offered(candidate, deadline) -> idle, resolved by accept, decline or timeout.

import logging
import threading
import time
from typing import Any, Callable, Optional

from .geo_utils import haversine_distance
from .models import (
    EventType,
    PositionFix,
    PromptState,
    ProximityResult,
    TrackerEvent,
)
from .nav_config import SWITCH_PROMPT_TIMEOUT_S
from .route_tracker import EventSink, ProgressionEngine
from .waypoint_store import WaypointStore

logger = logging.getLogger(__name__)

OUTCOME_ACCEPTED  = "accepted"
OUTCOME_DECLINED  = "declined"
OUTCOME_TIMEOUT   = "timeout"
OUTCOME_CANCELLED = "cancelled"

# scheduler(delay_s, callback) -> handle with .cancel()
Scheduler = Callable[[float, Callable[[], None]], Any]


def thread_timer(delay_s: float, callback: Callable[[], None]) -> threading.Timer:
    """Default scheduler: a daemon threading.Timer."""
    timer = threading.Timer(delay_s, callback)
    timer.daemon = True
    timer.start()
    return timer


class SwitchPromptCoordinator:
    """
    Offers a route re-sequencing when the user is within arrival range of a
    pending waypoint other than the current target.

    A timeout resolves exactly like accept. Each offer carries a generation
    token; whichever resolution takes the lock first wins and every later
    one is a no-op, so a timer firing next to a user answer never swaps twice.

    Args:
        store:     Route holder.
        engine:    Progression engine; supplies thresholds and the target setter.
        timeout_s: Seconds before an unanswered offer auto-accepts.
        emit:      Event sink for PROMPT_OFFERED / PROMPT_RESOLVED.
        lock:      Lock shared with the owner so a swap is atomic with fixes.
        scheduler: Starts the countdown; must return a cancellable handle.
        clock:     Monotonic clock in seconds.
    """

    def __init__(
        self,
        store: WaypointStore,
        engine: ProgressionEngine,
        timeout_s: float = SWITCH_PROMPT_TIMEOUT_S,
        emit: Optional[EventSink] = None,
        lock: Optional[threading.RLock] = None,
        scheduler: Scheduler = thread_timer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._engine = engine
        self.timeout_s = timeout_s
        self._emit_sink = emit
        self._lock = lock or threading.RLock()
        self._scheduler = scheduler
        self._clock = clock

        self._prompt: Optional[PromptState] = None
        self._generation = 0
        self._handle: Any = None
        self._last_prompted: Optional[int] = None

        store.add_replace_listener(self.reset)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def prompt(self) -> Optional[PromptState]:
        return self._prompt

    @property
    def is_offered(self) -> bool:
        return self._prompt is not None

    @property
    def last_prompted_index(self) -> Optional[int]:
        return self._last_prompted

    def seconds_left(self) -> Optional[float]:
        prompt = self._prompt
        if prompt is None:
            return None
        return max(0.0, prompt.deadline - self._clock())

    # ------------------------------------------------------------------
    # Trigger: call after every evaluated position fix
    # ------------------------------------------------------------------

    def consider(self, position: PositionFix, result: ProximityResult) -> bool:
        """
        Offer a switch if the fix warrants one.

        Returns:
            True if a new offer was made.
        """
        with self._lock:
            arrival = self._engine.active_thresholds.arrival
            self._forget_if_moved_away(position, arrival)

            if self._prompt is not None or result.arrived_at_current:
                return False
            candidate = result.nearest_pending_other
            if candidate is None or candidate.distance_m > arrival:
                return False
            if candidate.index == self._last_prompted:
                return False
            if self._store.current_target_index() is None:
                return False

            self._generation += 1
            token = self._generation
            self._prompt = PromptState(
                candidate_index=candidate.index,
                deadline=self._clock() + self.timeout_s,
            )
            self._last_prompted = candidate.index
            self._handle = self._scheduler(self.timeout_s, lambda: self._on_timeout(token))

            logger.info(
                f"Offering switch to #{candidate.index} '{candidate.name}' "
                f"({candidate.distance_m:.0f} m), auto-accept in {self.timeout_s:.0f}s."
            )
            self._emit(EventType.PROMPT_OFFERED, candidate.index, {
                "candidate_name": candidate.name,
                "candidate_index": candidate.index,
                "deadline_ms": int((time.time() + self.timeout_s) * 1000),
            })
            return True

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def accept(self) -> bool:
        """Swap the candidate into the current slot. False if nothing was offered."""
        with self._lock:
            if self._prompt is None:
                return False
            return self._apply_switch(OUTCOME_ACCEPTED)

    def decline(self) -> bool:
        """Drop the offer; the candidate is not re-offered until the user leaves and returns."""
        with self._lock:
            if self._prompt is None:
                return False
            candidate = self._prompt.candidate_index
            self._clear()
            self._last_prompted = candidate
            logger.info(f"Switch to #{candidate} declined.")
            self._emit(EventType.PROMPT_RESOLVED, candidate, {"outcome": OUTCOME_DECLINED})
            return True

    def cancel(self) -> bool:
        """Withdraw an outstanding offer without swapping."""
        with self._lock:
            if self._prompt is None:
                return False
            candidate = self._prompt.candidate_index
            self._clear()
            self._last_prompted = None
            logger.info(f"Switch to #{candidate} withdrawn.")
            self._emit(EventType.PROMPT_RESOLVED, candidate, {"outcome": OUTCOME_CANCELLED})
            return True

    def reset(self) -> None:
        """Forget everything; called before a new route replaces the current one."""
        with self._lock:
            self.cancel()
            self._last_prompted = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_timeout(self, token: int) -> None:
        with self._lock:
            if self._prompt is None or token != self._generation:
                return
            self._handle = None
            self._apply_switch(OUTCOME_TIMEOUT)

    def _apply_switch(self, outcome: str) -> bool:
        candidate = self._prompt.candidate_index
        current = self._store.current_target_index()
        self._clear()
        self._last_prompted = None

        if current is None or candidate == current or not self._store.waypoint_at(candidate).is_pending:
            logger.warning(f"Switch to #{candidate} no longer applicable; dropped.")
            self._emit(EventType.PROMPT_RESOLVED, candidate, {"outcome": OUTCOME_CANCELLED})
            return False

        self._store.swap_positions(current, candidate)
        self._engine.set_current_target(current)
        logger.info(f"Switch {outcome}: #{candidate} moved into slot #{current}.")
        self._emit(EventType.PROMPT_RESOLVED, current, {
            "outcome": outcome,
            "swapped": [current, candidate],
        })
        return True

    def _clear(self) -> None:
        self._prompt = None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _forget_if_moved_away(self, position: PositionFix, arrival: float) -> None:
        index = self._last_prompted
        if index is None or self._prompt is not None:
            return
        if index >= len(self._store):
            self._last_prompted = None
            return
        wp = self._store.waypoint_at(index)
        dist = haversine_distance(position.latitude, position.longitude, wp.latitude, wp.longitude)
        if not wp.is_pending or dist > arrival:
            self._last_prompted = None

    def _emit(self, event_type: EventType, index: Optional[int], payload: dict) -> None:
        if self._emit_sink is None:
            return
        wp = self._store.waypoint_at(index) if index is not None and index < len(self._store) else None
        self._emit_sink(TrackerEvent(
            type=event_type,
            stats=self._engine.stats,
            waypoint=wp.snapshot() if wp is not None else None,
            index=index,
            payload=payload,
        ))
