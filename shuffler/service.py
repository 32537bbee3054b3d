"""Request handlers tying the engine to the store and identity collaborators."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .achievements import (
    ACHIEVEMENTS,
    Achievement,
    UserStats,
    check_achievements,
    get_unlocked_achievements,
)
from .cache import RateLimiter, TTLCache
from .cards import Deck, create_deck, shuffle_deck
from .config import ShufflerConfig
from .errors import AuthError, NotFoundError, RateLimitedError
from .identity import Identity
from .leaderboard import LeaderboardPage, SortKey, rank_entries
from .patterns import Pattern, find_patterns
from .store import ShuffleRecord, ShuffleStore

__all__ = ["ShuffleOutcome", "AchievementStatus", "ShuffleService"]

logger = logging.getLogger(__name__)

Now = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class ShuffleOutcome:
    """Everything produced by one shuffle request."""

    deck: Deck
    patterns: tuple[Pattern, ...]
    achievements: tuple[Achievement, ...]
    record: Optional[ShuffleRecord] = None
    stats: Optional[UserStats] = None


@dataclass(frozen=True, slots=True)
class AchievementStatus:
    achievement: Achievement
    unlocked_at: Optional[datetime] = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


class ShuffleService:
    """Stateless request handlers; the caches are the only in-memory state."""

    def __init__(
        self,
        store: ShuffleStore,
        identity: Identity,
        config: ShufflerConfig | None = None,
        clock: Now = datetime.now,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.config = config or ShufflerConfig()
        self._clock = clock
        self._rng = rng
        self._stats_cache: TTLCache[UserStats] = TTLCache(self.config.stats_cache_ttl, self._seconds)
        self._limiter = RateLimiter(self.config.rate_limit, self.config.rate_window, self._seconds)

    def _seconds(self) -> float:
        return self._clock().timestamp()

    def _require_user(self) -> str:
        user_id = self.identity.current_user()
        if user_id is None:
            raise AuthError("Authentication required")
        return user_id

    # -- shuffling ---------------------------------------------------------

    def shuffle(self) -> ShuffleOutcome:
        """Shuffle a fresh deck, detect patterns and award achievements.

        Anonymous shuffles are evaluated but nothing is persisted, and only
        achievements earned by the deck itself or the time of day are reported.
        """

        user_id = self.identity.current_user()
        if user_id is not None and not self._limiter.allow(user_id):
            raise RateLimitedError(
                "Too many shuffles, slow down",
                details={"limit": self.config.rate_limit, "window": self.config.rate_window},
            )

        deck = shuffle_deck(create_deck(), self._rng)
        patterns = tuple(find_patterns(deck))
        moment = self._clock()

        if user_id is None:
            earned = check_achievements(deck, 0, moment, patterns)
            return ShuffleOutcome(deck=deck, patterns=patterns, achievements=tuple(earned))

        record = self.store.record_shuffle(user_id, deck, moment)
        self._stats_cache.invalidate(user_id)
        stats = self.store.get_user_stats(user_id, self.config.most_common_depth)
        candidates = [achievement.id for achievement in check_achievements(deck, stats.total_shuffles, moment, patterns)]
        candidates.extend(achievement.id for achievement in get_unlocked_achievements(stats))

        new_ids: list[str] = []
        while candidates:
            added = self.store.add_achievements(user_id, candidates, record.id, moment)
            if not added:
                break
            new_ids.extend(added)
            # Milestones depend on the achievement count just written.
            stats = self.store.get_user_stats(user_id, self.config.most_common_depth)
            candidates = [achievement.id for achievement in get_unlocked_achievements(stats)]

        earned = tuple(achievement for achievement in ACHIEVEMENTS if achievement.id in new_ids)
        logger.debug("Shuffle %s: %d patterns, %d new achievements", record.id, len(patterns), len(earned))
        return ShuffleOutcome(deck=deck, patterns=patterns, achievements=earned, record=record, stats=stats)

    # -- stats & achievements ---------------------------------------------

    def user_stats(self, user_id: str | None = None) -> UserStats:
        user_id = user_id or self._require_user()
        cached = self._stats_cache.get(user_id)
        if cached is not None:
            return cached
        stats = self.store.get_user_stats(user_id, self.config.most_common_depth)
        self._stats_cache.set(user_id, stats)
        return stats

    def unlocked_achievements(self, user_id: str | None = None) -> list[Achievement]:
        user_id = user_id or self._require_user()
        unlocked = self.store.user_achievements(user_id)
        return [achievement for achievement in ACHIEVEMENTS if achievement.id in unlocked]

    def achievement_board(self, user_id: str | None = None) -> list[AchievementStatus]:
        """Return the full catalog with the unlock time of each entry, if any."""

        user_id = user_id or self.identity.current_user()
        unlocked = self.store.user_achievements(user_id) if user_id is not None else {}
        return [AchievementStatus(achievement, unlocked.get(achievement.id)) for achievement in ACHIEVEMENTS]

    # -- saved & shared shuffles ------------------------------------------

    def save(self, shuffle_id: int, saved: bool = True) -> ShuffleRecord:
        user_id = self._require_user()
        return self.store.set_saved(
            user_id,
            shuffle_id,
            saved,
            share_code_length=self.config.share_code_length,
            max_saved=self.config.max_saved_shuffles,
        )

    def share(self, shuffle_id: int) -> ShuffleRecord:
        user_id = self._require_user()
        record = self.store.set_shared(user_id, shuffle_id, self.config.share_code_length)
        self.store.record_analytics(record.id, user_id, "share")
        return record

    def shared(self, code: str) -> ShuffleRecord:
        record = self.store.get_shared(code)
        if record is None:
            raise NotFoundError("Shared shuffle not found", details={"share_code": code})
        self.store.record_analytics(record.id, self.identity.current_user(), "view")
        return record

    def history(self, saved_only: bool = False, page: int = 1) -> list[ShuffleRecord]:
        user_id = self._require_user()
        return self.store.list_shuffles(user_id, saved_only, page, self.config.history_page_size)

    # -- global views ------------------------------------------------------

    def leaderboard(self, sort_by: SortKey | str = SortKey.TOTAL_SHUFFLES, page: int = 1) -> LeaderboardPage:
        return rank_entries(self.store.leaderboard_rows(), sort_by, page, self.config.leaderboard_page_size)

    def global_count(self) -> int:
        return self.store.global_count()
