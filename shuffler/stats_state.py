"""Client-side view of a user's counters between server fetches.

Local shuffles bump the counters optimistically; the next successful fetch
replaces them with the server's numbers, which always win. A failed fetch
marks the view stale but keeps the last known value on screen.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Callable, List, Optional

from .achievements import UserStats
from .cache import Clock

__all__ = ["SyncState", "StatsTracker", "Listener"]

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    STALE = "stale"
    OPTIMISTIC = "optimistic"
    RECONCILED = "reconciled"


Listener = Callable[["StatsTracker"], None]


class StatsTracker:
    """Holds the displayed stats and notifies listeners on every change."""

    def __init__(self, refresh_interval: float = 30.0, clock: Clock = time.monotonic) -> None:
        self.refresh_interval = refresh_interval
        self._clock = clock
        self.state = SyncState.STALE
        self.stats = UserStats()
        self.global_count = 0
        self.last_error: Optional[BaseException] = None
        self.last_fetched: Optional[float] = None
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def local_update(self, delta: int = 1, achievements: int = 0) -> None:
        """Apply ``delta`` shuffles (and unlocked achievements) before the server confirms them."""

        self.stats = replace(
            self.stats,
            total_shuffles=self.stats.total_shuffles + delta,
            achievements_count=self.stats.achievements_count + achievements,
            shuffle_streak=max(self.stats.shuffle_streak, 1),
        )
        self.global_count += delta
        self.state = SyncState.OPTIMISTIC
        self._notify()

    def fetch_success(self, stats: UserStats, global_count: Optional[int] = None) -> None:
        self.stats = stats
        if global_count is not None:
            self.global_count = global_count
        self.last_error = None
        self.last_fetched = self._clock()
        self.state = SyncState.RECONCILED
        self._notify()

    def fetch_failure(self, error: BaseException) -> None:
        logger.warning("Stats refresh failed: %s", error)
        self.last_error = error
        self.state = SyncState.STALE
        self._notify()

    def needs_refresh(self) -> bool:
        """True when the view is not reconciled or the last fetch is too old."""

        if self.state is not SyncState.RECONCILED or self.last_fetched is None:
            return True
        return self._clock() - self.last_fetched >= self.refresh_interval
