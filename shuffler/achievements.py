"""Achievement catalog and the evaluators that award its entries.

Four kinds of trigger are supported:

* ``condition`` predicates over :class:`UserStats` (counts, streaks, milestones),
* ``pattern_id`` bindings fired when :func:`shuffler.patterns.find_patterns`
  reports that id,
* ``shuffle_check`` bindings to the one-off predicates in :mod:`shuffler.checks`,
* ``time_flag`` bindings to a field of :class:`shuffler.checks.TimeFlags`.

Count achievements additionally carry ``shuffle_count`` so the shuffle that
reaches the exact total awards them straight away.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence

from . import checks
from .cards import Card
from .patterns import Pattern, find_patterns, pattern_ids
from .validation import ensure_cards

__all__ = [
    "AchievementCategory",
    "CardCount",
    "UserStats",
    "Achievement",
    "ACHIEVEMENTS",
    "get_achievement",
    "get_unlocked_achievements",
    "check_shuffle_achievements",
    "check_time_achievements",
    "check_pattern_achievements",
    "check_achievements",
]


class AchievementCategory(str, Enum):
    SHUFFLE_COUNT = "shuffle_count"
    STREAK = "streak"
    PATTERN = "pattern"
    TIME = "time"
    SPECIAL = "special"
    MILESTONE = "milestone"


@dataclass(frozen=True, slots=True)
class CardCount:
    card: Card
    count: int


@dataclass(frozen=True, slots=True)
class UserStats:
    """Aggregate counters for one user, as read from the store."""

    total_shuffles: int = 0
    shuffle_streak: int = 0
    achievements_count: int = 0
    most_common_cards: tuple[CardCount, ...] = ()


StatsCondition = Callable[[UserStats], bool]
ShuffleCheck = Callable[[Any], bool]


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    name: str
    description: str
    category: AchievementCategory
    condition: Optional[StatsCondition] = None
    pattern_id: Optional[str] = None
    shuffle_check: Optional[ShuffleCheck] = None
    time_flag: Optional[str] = None
    shuffle_count: Optional[int] = None


def _count(identifier: str, name: str, total: int) -> Achievement:
    description = "Complete your first shuffle" if total == 1 else f"Complete {total} shuffles"
    return Achievement(
        identifier,
        name,
        description,
        AchievementCategory.SHUFFLE_COUNT,
        condition=lambda stats: stats.total_shuffles >= total,
        shuffle_count=total,
    )


def _streak(identifier: str, name: str, days: int) -> Achievement:
    return Achievement(
        identifier,
        name,
        f"Shuffle on {days} consecutive days",
        AchievementCategory.STREAK,
        condition=lambda stats: stats.shuffle_streak >= days,
    )


def _milestone(identifier: str, name: str, earned: int) -> Achievement:
    return Achievement(
        identifier,
        name,
        f"Unlock {earned} achievements",
        AchievementCategory.MILESTONE,
        condition=lambda stats: stats.achievements_count >= earned,
    )


def _pattern(identifier: str, name: str, description: str) -> Achievement:
    return Achievement(identifier, name, description, AchievementCategory.PATTERN, pattern_id=identifier)


def _check(
    identifier: str,
    name: str,
    description: str,
    check: ShuffleCheck,
    category: AchievementCategory = AchievementCategory.SPECIAL,
) -> Achievement:
    return Achievement(identifier, name, description, category, shuffle_check=check)


def _time(identifier: str, name: str, description: str, flag: str) -> Achievement:
    return Achievement(identifier, name, description, AchievementCategory.TIME, time_flag=flag)


ACHIEVEMENTS: tuple[Achievement, ...] = (
    # Shuffle counts
    _count("first_shuffle", "First Shuffle", 1),
    _count("ten_shuffles", "Novice Shuffler", 10),
    _count("fifty_shuffles", "Shuffle Enthusiast", 50),
    _count("hundred_shuffles", "Shuffle Master", 100),
    _count("five_hundred_shuffles", "Shuffle Addict", 500),
    _count("thousand_shuffles", "Shuffle Legend", 1000),
    # Streaks
    _streak("streak_3", "Warming Up", 3),
    _streak("streak_7", "Week of Shuffles", 7),
    _streak("streak_30", "Monthly Devotion", 30),
    # Milestones
    _milestone("collector_5", "Collector", 5),
    _milestone("collector_10", "Curator", 10),
    _milestone("collector_25", "Completionist", 25),
    # Poker hands
    _check(
        "royal_flush",
        "Royal Flush",
        "Find 5 consecutive cards forming a royal flush",
        checks.has_royal_flush,
        AchievementCategory.PATTERN,
    ),
    _pattern("straight_flush", "Straight Flush", "Find 5 consecutive cards forming a straight flush"),
    _pattern("four_of_a_kind", "Four of a Kind", "Find 4 consecutive cards of the same rank"),
    _pattern("full_house", "Full House", "Find a full house within 5 consecutive cards"),
    _check(
        "flush",
        "Flush",
        "Find 5 consecutive cards of the same suit",
        checks.has_five_same_suit_in_row,
        AchievementCategory.PATTERN,
    ),
    _pattern("straight", "Straight", "Find 5 consecutive cards in sequence"),
    _pattern("three_of_a_kind", "Three of a Kind", "Find 3 consecutive cards of the same rank"),
    _pattern("two_pair", "Two Pair", "Find two pairs in four consecutive cards (e.g. 5-5-9-9)"),
    # Deck patterns
    _check(
        "alternating_colors",
        "Alternating Colors",
        "Shuffle with perfectly alternating colors",
        checks.has_symmetric_shuffle,
        AchievementCategory.PATTERN,
    ),
    _pattern("all_red", "Seeing Red", "First 13 cards are all red"),
    _pattern("all_black", "Back in Black", "First 13 cards are all black"),
    _pattern("four_aces", "Ace Collector", "All four aces in a row"),
    _pattern("royal_family", "Royal Family", "Find 4 consecutive face cards (J, Q, K) in a row"),
    _pattern("lucky_thirteen", "Lucky Thirteen", "Card #13 in your shuffle is an Ace"),
    _pattern("perfect_suit", "Perfect Suit", "Find at least 6 cards of the same suit in a row"),
    _pattern("stairway_to_heaven", "Stairway to Heaven", "Find 7 consecutive cards in ascending order"),
    _pattern("highway_to_hell", "Highway to Hell", "Find 7 consecutive cards in descending order"),
    _pattern("prime_position", "Prime Position", "Cards at positions 2, 3, 5, 7, 11 and 13 share a color"),
    _pattern("palindrome", "Palindrome", "Find 6 consecutive cards whose ranks read the same both ways"),
    _pattern("four_corners", "Four Corners", "The 1st, 13th, 40th and 52nd cards share a suit"),
    _pattern("unlucky_shuffle", "Unlucky Shuffle", "The 13th card is the King of Spades"),
    _pattern("fibonacci_sequence", "Fibonacci Sequence", "Find 5 consecutive cards following a Fibonacci-like pattern"),
    _pattern("rainbow", "Rainbow", "Find 4 consecutive cards with all 4 suits in alternating colors"),
    _pattern("double_rainbow", "Double Rainbow", "Find the same four-suit rainbow twice in a row"),
    _pattern("prime_values", "Prime Numbers", "Find 5 consecutive cards with prime values (2, 3, 5, 7, J, K)"),
    _pattern("sum_thirteen", "Lucky Sum", "Find 2 consecutive cards whose blackjack values sum to 13"),
    _pattern("color_gradient", "Color Gradient", "Find at least 8 consecutive cards of the same color"),
    _pattern("perfect_balance", "Perfect Balance", "Find an even split of red and black number cards"),
    _pattern("sequential_trio", "Sequential Trio", "Find 3 consecutive cards of the same suit in sequential order"),
    _pattern("even_odd_pattern", "Even Odd Pattern", "Find 6 consecutive cards alternating between even and odd"),
    _pattern("the_sandwich", "The Sandwich", "Find 3 consecutive cards where the middle suit differs from the matching outer two"),
    # Legendary patterns
    _pattern("perfect_order", "Perfect Order", "Find 13 cards of the same suit in perfect numerical order"),
    _pattern("quad_sequence", "Quad Sequence", "All four of one rank followed by all four of the next"),
    _pattern("royal_procession", "Royal Procession", "Find all 12 face cards in consecutive positions"),
    _pattern("mirror_shuffle", "Mirror Shuffle", "First 26 cards mirror the last 26 in reverse order by rank"),
    _pattern("perfect_bridge", "Perfect Bridge", "Find 26 consecutive cards in alternating colors"),
    _pattern("symmetrical_suits", "Symmetrical Suits", "Find 12 cards whose suit pattern reads the same both ways"),
    _pattern("consecutive_flush_quads", "Consecutive Flush Quads", "Four runs of 4 same-suit cards, one per suit"),
    _pattern("consecutive_runs", "Consecutive Runs", "Find three straights back to back"),
    _pattern("suit_segregation", "Suit Segregation", "All 13 cards of one suit followed by all 13 of another"),
    _pattern("perfect_sequence", "Factory Fresh", "The whole deck comes out in its original order"),
    # One-off shuffle checks
    _check("triple_aces", "Ace High", "At least three aces in the first 5 cards", checks.has_triple_aces_first),
    _check("suited_run", "Suited Run", "Three neighbouring cards of one suit climbing by one", checks.has_sequential_same_suit),
    _check("three_pairs", "Pair Parade", "Three adjacent pairs of different ranks", checks.has_three_pairs),
    _check("rainbow_opening", "Rainbow Opening", "All four suits in the first 4 cards", checks.has_rainbow_shuffle),
    _check("queens_court", "Queen's Court", "All four queens in the first 10 cards", checks.has_all_queens_early),
    _check("even_start", "Even Start", "The first 5 cards are all even", checks.has_only_even_cards_first),
    _check("agent_007", "Agent 007", "The 7 of Spades lands in 7th position", checks.has_007_pattern),
    _check("blackjack", "Blackjack", "The first two cards make 21", checks.has_blackjack),
    _check("face_parade", "Face Parade", "Five face cards in a row", checks.has_five_face_cards_in_row),
    _check("in_order", "In Order", "Thirteen cards in factory order", checks.has_perfect_sequential_order),
    # Time of shuffle
    _time("midnight_shuffle", "Night Owl", "Shuffle between midnight and 3 AM", "is_midnight"),
    _time("early_bird", "Early Bird", "Shuffle between 5 and 11 AM", "is_morning"),
    _time("weekend_warrior", "Weekend Warrior", "Shuffle on a weekend", "is_weekend"),
    _time("night_shift", "Night Shift", "Shuffle between 10 PM and 4 AM", "is_night_time"),
    _time("on_the_hour", "On the Hour", "Shuffle exactly on the hour", "is_top_of_hour"),
    _time("new_year", "Fresh Start", "Shuffle on New Year's Day", "is_new_years_day"),
    _time("monday_blues", "Monday Blues", "Shuffle on a Monday", "is_monday"),
    _time("leap_day", "Leap of Faith", "Shuffle on February 29th", "is_leap_day"),
    _time("friday_the_13th", "Unlucky Day", "Shuffle on Friday the 13th", "is_friday_the_13th"),
    _time("palindrome_date", "Palindrome Day", "Shuffle on a date that reads the same both ways (MMDDYY)", "is_palindrome_date"),
)

_BY_ID = {achievement.id: achievement for achievement in ACHIEVEMENTS}


def get_achievement(identifier: str) -> Achievement | None:
    return _BY_ID.get(identifier)


def get_unlocked_achievements(stats: UserStats) -> list[Achievement]:
    """Return every stats-driven achievement that ``stats`` satisfies."""

    return [
        achievement
        for achievement in ACHIEVEMENTS
        if achievement.condition is not None and achievement.condition(stats)
    ]


def check_shuffle_achievements(cards: Iterable[Any]) -> list[str]:
    deck = ensure_cards(cards)
    return [
        achievement.id
        for achievement in ACHIEVEMENTS
        if achievement.shuffle_check is not None and achievement.shuffle_check(deck)
    ]


def check_time_achievements(moment: datetime) -> list[str]:
    flags = set(checks.check_time_based_achievements(moment).active())
    return [achievement.id for achievement in ACHIEVEMENTS if achievement.time_flag in flags]


def check_pattern_achievements(patterns: Iterable[Pattern]) -> list[str]:
    found = pattern_ids(patterns)
    return [achievement.id for achievement in ACHIEVEMENTS if achievement.pattern_id in found]


def check_achievements(
    cards: Iterable[Any],
    shuffle_count: int,
    moment: datetime | None = None,
    patterns: Sequence[Pattern] | None = None,
) -> list[Achievement]:
    """Return every achievement earned by a single shuffle event.

    ``shuffle_count`` is the user's total including this shuffle; count
    achievements fire only on the exact total. Time achievements are skipped
    when ``moment`` is ``None``. Already computed ``patterns`` may be passed
    to avoid scanning the deck twice.
    """

    deck = ensure_cards(cards)
    if patterns is None:
        patterns = find_patterns(deck)
    earned = set(check_pattern_achievements(patterns))
    earned.update(check_shuffle_achievements(deck))
    if moment is not None:
        earned.update(check_time_achievements(moment))
    earned.update(
        achievement.id for achievement in ACHIEVEMENTS if achievement.shuffle_count == shuffle_count
    )
    return [achievement for achievement in ACHIEVEMENTS if achievement.id in earned]
