"""Ranking of users by their shuffle counters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from .errors import ValidationError

__all__ = ["SortKey", "LeaderboardEntry", "LeaderboardPage", "rank_entries"]


class SortKey(str, Enum):
    TOTAL_SHUFFLES = "total_shuffles"
    SHUFFLE_STREAK = "shuffle_streak"
    ACHIEVEMENT_COUNT = "achievement_count"

    @property
    def column(self) -> str:
        """Name of the counter this key sorts on."""

        return "achievements_count" if self is SortKey.ACHIEVEMENT_COUNT else self.value


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    username: str
    total_shuffles: int
    shuffle_streak: int
    achievements_count: int
    rank: int


@dataclass(frozen=True, slots=True)
class LeaderboardPage:
    """One page of ranked entries plus the paging context."""

    entries: tuple[LeaderboardEntry, ...]
    sort_by: SortKey
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.page_size))


def _counter(row: Mapping[str, Any], key: str) -> int:
    try:
        return max(int(row.get(key) or 0), 0)
    except (TypeError, ValueError):
        return 0


def rank_entries(
    rows: Iterable[Mapping[str, Any]],
    sort_by: SortKey | str = SortKey.TOTAL_SHUFFLES,
    page: int = 1,
    page_size: int = 20,
) -> LeaderboardPage:
    """Sort ``rows`` descending on ``sort_by`` and return the requested page.

    Sorting is stable: ties keep the order in which rows were supplied. Ranks
    are 1-based positions in the full ordering, not within the page.
    """

    try:
        key = SortKey(sort_by)
    except ValueError as exc:
        raise ValidationError(f"Unknown sort key {sort_by!r}", details={"sort_by": str(sort_by)}) from exc
    if page < 1 or page_size < 1:
        raise ValidationError("page and page_size must be positive", details={"page": page, "page_size": page_size})

    materialised = list(rows)
    ordered = sorted(materialised, key=lambda row: _counter(row, key.column), reverse=True)
    start = (page - 1) * page_size
    entries = tuple(
        LeaderboardEntry(
            username=str(row.get("username") or row.get("id") or "anonymous"),
            total_shuffles=_counter(row, "total_shuffles"),
            shuffle_streak=_counter(row, "shuffle_streak"),
            achievements_count=_counter(row, "achievements_count"),
            rank=start + offset + 1,
        )
        for offset, row in enumerate(ordered[start : start + page_size])
    )
    return LeaderboardPage(entries=entries, sort_by=key, page=page, page_size=page_size, total=len(materialised))
