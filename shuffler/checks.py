"""One-off achievement checks over a single shuffle or a moment in time.

Every shuffle check accepts either a deck or raw card records; records go
through :func:`shuffler.validation.ensure_cards` so malformed entries are
skipped rather than raising.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Iterable

from .cards import Rank, Suit, create_deck
from .hands import ROYAL_SEQUENCE, is_flush, windows
from .validation import ensure_cards

__all__ = [
    "has_triple_aces_first",
    "has_sequential_same_suit",
    "has_three_pairs",
    "has_symmetric_shuffle",
    "has_rainbow_shuffle",
    "has_royal_flush",
    "has_all_queens_early",
    "has_five_same_suit_in_row",
    "has_only_even_cards_first",
    "has_all_aces",
    "has_007_pattern",
    "has_blackjack",
    "has_five_face_cards_in_row",
    "has_perfect_sequential_order",
    "TimeFlags",
    "check_time_based_achievements",
]

Cards = Iterable[Any]

_EVEN_RANKS = frozenset({Rank.TWO, Rank.FOUR, Rank.SIX, Rank.EIGHT, Rank.TEN})
_CANONICAL_DECK = create_deck()
_CANONICAL_POSITIONS = {card: position for position, card in enumerate(_CANONICAL_DECK)}


def has_triple_aces_first(cards: Cards) -> bool:
    """At least three aces among the first five cards."""

    deck = ensure_cards(cards)
    if len(deck) < 5:
        return False
    return sum(1 for card in deck[:5] if card.rank is Rank.ACE) >= 3


def has_sequential_same_suit(cards: Cards) -> bool:
    """Three neighbouring cards of one suit climbing by one, e.g. 5♠ 6♠ 7♠."""

    deck = ensure_cards(cards)
    for _, window in windows(deck, 3):
        if is_flush(window) and window[1].value == window[0].value + 1 and window[2].value == window[1].value + 1:
            return True
    return False


def has_three_pairs(cards: Cards) -> bool:
    """Three adjacent pairs of distinct ranks anywhere in the shuffle."""

    deck = ensure_cards(cards)
    paired_ranks = {window[0].rank for _, window in windows(deck, 2) if window[0].rank is window[1].rank}
    return len(paired_ranks) >= 3


def has_symmetric_shuffle(cards: Cards) -> bool:
    """Perfect red/black alternation across the whole shuffle."""

    deck = ensure_cards(cards)
    if len(deck) < 4:
        return False
    return all(deck[i].color is not deck[i - 1].color for i in range(1, len(deck)))


def has_rainbow_shuffle(cards: Cards) -> bool:
    """All four suits among the first four cards."""

    deck = ensure_cards(cards)
    if len(deck) < 4:
        return False
    return len({card.suit for card in deck[:4]}) == 4


def has_royal_flush(cards: Cards) -> bool:
    """10, J, Q, K, A of one suit appearing in that order."""

    deck = ensure_cards(cards)
    for _, window in windows(deck, len(ROYAL_SEQUENCE)):
        if is_flush(window) and all(card.rank is rank for card, rank in zip(window, ROYAL_SEQUENCE)):
            return True
    return False


def has_all_queens_early(cards: Cards) -> bool:
    deck = ensure_cards(cards)
    if len(deck) < 10:
        return False
    return sum(1 for card in deck[:10] if card.rank is Rank.QUEEN) == 4


def has_five_same_suit_in_row(cards: Cards) -> bool:
    deck = ensure_cards(cards)
    return any(is_flush(window) for _, window in windows(deck, 5))


def has_only_even_cards_first(cards: Cards) -> bool:
    """The first five cards are all 2, 4, 6, 8 or 10."""

    deck = ensure_cards(cards)
    if len(deck) < 5:
        return False
    return all(card.rank in _EVEN_RANKS for card in deck[:5])


def has_all_aces(cards: Cards) -> bool:
    deck = ensure_cards(cards)
    return sum(1 for card in deck if card.rank is Rank.ACE) == 4


def has_007_pattern(cards: Cards) -> bool:
    """The 7 of spades sits at index 6."""

    deck = ensure_cards(cards)
    if len(deck) < 7:
        return False
    seventh = deck[6]
    return seventh.rank is Rank.SEVEN and seventh.suit is Suit.SPADES


def has_blackjack(cards: Cards) -> bool:
    """The first two cards total 21 with the ace counted as 11."""

    deck = ensure_cards(cards)
    if len(deck) < 2:
        return False
    return deck[0].blackjack_value + deck[1].blackjack_value == 21


def has_five_face_cards_in_row(cards: Cards) -> bool:
    deck = ensure_cards(cards)
    return any(all(card.is_face for card in window) for _, window in windows(deck, 5))


def has_perfect_sequential_order(cards: Cards) -> bool:
    """Thirteen cards following the canonical suit-major order.

    Any 13-card stretch that matches a stretch of the fresh deck counts,
    including one that crosses from one suit's king into the next suit's ace.
    """

    deck = ensure_cards(cards)
    if len(deck) < 13:
        return False
    for _, window in windows(deck, 13):
        start = _CANONICAL_POSITIONS[window[0]]
        if start + 13 > len(_CANONICAL_DECK):
            continue
        if all(card == _CANONICAL_DECK[start + offset] for offset, card in enumerate(window)):
            return True
    return False


@dataclass(frozen=True, slots=True)
class TimeFlags:
    """Calendar and clock conditions that hold at one moment."""

    is_midnight: bool
    is_morning: bool
    is_weekend: bool
    is_night_time: bool
    is_top_of_hour: bool
    is_new_years_day: bool
    is_monday: bool
    is_leap_day: bool
    is_friday_the_13th: bool
    is_palindrome_date: bool

    def active(self) -> list[str]:
        """Return the names of the flags that are set, in declaration order."""

        return [flag.name for flag in fields(self) if getattr(self, flag.name)]


def check_time_based_achievements(moment: datetime) -> TimeFlags:
    """Evaluate every time flag for ``moment`` (its own wall-clock fields)."""

    hour = moment.hour
    weekday = moment.weekday()  # Monday == 0
    stamp = f"{moment.month:02d}{moment.day:02d}{moment.year % 100:02d}"
    return TimeFlags(
        is_midnight=0 <= hour < 3,
        is_morning=5 <= hour < 11,
        is_weekend=weekday >= 5,
        is_night_time=hour >= 22 or hour < 4,
        is_top_of_hour=moment.minute == 0,
        is_new_years_day=moment.month == 1 and moment.day == 1,
        is_monday=weekday == 0,
        is_leap_day=moment.month == 2 and moment.day == 29,
        is_friday_the_13th=weekday == 4 and moment.day == 13,
        is_palindrome_date=stamp == stamp[::-1],
    )
