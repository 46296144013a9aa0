# position_feed.py
# Wraps a continuous position source behind a single subscribe() contract.
# Success and error values travel on the same stream and are split into two callbacks.

import logging
import queue
import threading
import time
from typing import Callable, Iterable, Iterator, Optional, Union

from .errors import PositionSourceError
from .models import PositionFix

logger = logging.getLogger(__name__)

FeedItem = Union[PositionFix, PositionSourceError]
FixHandler = Callable[[PositionFix], object]
ErrorHandler = Callable[[PositionSourceError], object]

_CLOSED = object()


class Subscription:
    """Handle returned by PositionFeed.subscribe(). cancel() is idempotent."""

    def __init__(self, feed: "PositionFeed") -> None:
        self._feed = feed
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            self._cancelled.set()
            self._feed._detach(self)


class PositionFeed:
    """
    Single-consumer adapter over a lazy, non-restartable position stream.

    Usage:
        feed = PositionFeed(source)
        sub = feed.subscribe(nav.update, nav.report_error)
        feed.start()            # or feed.run() to pump in this thread
        ...
        sub.cancel()

    Args:
        source: Iterable yielding PositionFix or PositionSourceError.
    """

    def __init__(self, source: Iterable[FeedItem]) -> None:
        self._source = source
        self._subscription: Optional[Subscription] = None
        self._on_fix: Optional[FixHandler] = None
        self._on_error: Optional[ErrorHandler] = None
        self._consumed = False
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, on_fix: FixHandler, on_error: ErrorHandler) -> Subscription:
        with self._lock:
            if self._subscription is not None:
                raise RuntimeError("PositionFeed already has an active subscriber.")
            self._subscription = Subscription(self)
            self._on_fix = on_fix
            self._on_error = on_error
            return self._subscription

    @property
    def has_subscriber(self) -> bool:
        return self._subscription is not None

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if self._subscription is subscription:
                self._subscription = None
                self._on_fix = None
                self._on_error = None

    # ------------------------------------------------------------------
    # Pumping
    # ------------------------------------------------------------------

    def run(self) -> int:
        """
        Deliver items to the subscriber until the source ends or the
        subscription is cancelled.

        Returns:
            Number of items delivered.
        """
        with self._lock:
            if self._consumed:
                raise RuntimeError("PositionFeed cannot be restarted.")
            self._consumed = True

        delivered = 0
        for item in self._source:
            with self._lock:
                on_fix, on_error = self._on_fix, self._on_error
            if on_fix is None:
                break
            if isinstance(item, PositionSourceError):
                logger.warning(f"Position source error ({item.source_code}): {item.message}")
                on_error(item)
            else:
                on_fix(item)
            delivered += 1
        return delivered

    def start(self) -> threading.Thread:
        """Run the pump on a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="position-feed", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


class QueuePositionSource:
    """
    Thread-safe push source: a location callback pushes, the feed iterates.

    Iteration blocks until the next item and ends after close().
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()

    def push_fix(self, fix: PositionFix) -> None:
        self._queue.put(fix)

    def push_error(self, error: PositionSourceError) -> None:
        self._queue.put(error)

    def close(self) -> None:
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[FeedItem]:
        while True:
            item = self._queue.get()
            try:
                if item is _CLOSED:
                    return
                yield item
            finally:
                self._queue.task_done()


def replay(fixes: Iterable[FeedItem], interval_s: float = 0.0) -> Iterator[FeedItem]:
    """Yield recorded fixes with an optional pause between them (simulation)."""
    for item in fixes:
        yield item
        if interval_s > 0:
            time.sleep(interval_s)
