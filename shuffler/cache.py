"""Small in-process caches owned by the service.

Both helpers take a ``clock`` returning seconds so tests can drive time
explicitly.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Generic, Hashable, Optional, Tuple, TypeVar

__all__ = ["Clock", "TTLCache", "RateLimiter"]

Clock = Callable[[], float]
V = TypeVar("V")


@dataclass(slots=True)
class TTLCache(Generic[V]):
    """Keyed cache whose entries expire ``ttl`` seconds after being set."""

    ttl: float
    clock: Clock = time.monotonic
    _entries: Dict[Hashable, Tuple[float, V]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.ttl <= 0:
            raise ValueError("ttl must be positive")

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires, value = entry
        if self.clock() >= expires:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        self.purge()
        self._entries[key] = (self.clock() + self.ttl, value)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def purge(self) -> int:
        """Drop expired entries and return how many were removed."""

        now = self.clock()
        expired = [key for key, (expires, _) in self._entries.items() if now >= expires]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True)
class RateLimiter:
    """Sliding-window limiter allowing ``limit`` events per ``window`` seconds per key.

    Keys with no event inside the window are dropped, so the map only holds
    callers active in the last ``window`` seconds.
    """

    limit: int
    window: float
    clock: Clock = time.monotonic
    _events: Dict[Hashable, Deque[float]] = field(default_factory=dict, init=False, repr=False)
    _last_sweep: float = field(default=float("-inf"), init=False, repr=False)

    def __post_init__(self) -> None:
        if self.limit <= 0 or self.window <= 0:
            raise ValueError("limit and window must be positive")

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        idle = [key for key, events in self._events.items() if not events or now - events[-1] >= self.window]
        for key in idle:
            del self._events[key]

    def allow(self, key: Hashable) -> bool:
        now = self.clock()
        self._sweep(now)
        events = self._events.setdefault(key, deque())
        while events and now - events[0] >= self.window:
            events.popleft()
        if len(events) >= self.limit:
            return False
        events.append(now)
        return True

    def remaining(self, key: Hashable) -> int:
        now = self.clock()
        events = self._events.get(key, ())
        return self.limit - sum(1 for stamp in events if now - stamp < self.window)

    def __len__(self) -> int:
        return len(self._events)
