"""Poker-hand helpers applied to contiguous windows of a deck."""

from __future__ import annotations

from collections import Counter
from enum import IntEnum
from typing import Iterator, Sequence

from .cards import Card, Rank

__all__ = [
    "HandRank",
    "ROYAL_SEQUENCE",
    "windows",
    "is_flush",
    "is_straight",
    "is_royal_sequence",
    "alternates_colors",
    "classify_hand",
    "find_consecutive_poker_hands",
]

HAND_SIZE = 5

ROYAL_SEQUENCE: tuple[Rank, ...] = (Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING, Rank.ACE)
_ACE_HIGH_VALUES = frozenset({1, 10, 11, 12, 13})


class HandRank(IntEnum):
    """Poker hand categories, weakest first."""

    HIGH_CARD = 0
    PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8
    ROYAL_FLUSH = 9


# Hands that find_consecutive_poker_hands reports.
REPORTED_HANDS: tuple[HandRank, ...] = (
    HandRank.STRAIGHT,
    HandRank.FLUSH,
    HandRank.FULL_HOUSE,
    HandRank.STRAIGHT_FLUSH,
    HandRank.ROYAL_FLUSH,
)


def windows(cards: Sequence[Card], size: int) -> Iterator[tuple[int, Sequence[Card]]]:
    """Yield ``(start, window)`` for every contiguous span of ``size`` cards."""

    for start in range(len(cards) - size + 1):
        yield start, cards[start : start + size]


def is_flush(cards: Sequence[Card]) -> bool:
    """Return ``True`` when every card shares one suit."""

    if not cards:
        return False
    suit = cards[0].suit
    return all(card.suit is suit for card in cards)


def is_straight(cards: Sequence[Card]) -> bool:
    """Return ``True`` for distinct sequential ranks in any order.

    The ace counts low, except for the ten-to-ace run which is also accepted.
    """

    values = {card.value for card in cards}
    if len(values) != len(cards) or len(cards) < 2:
        return False
    if max(values) - min(values) == len(cards) - 1:
        return True
    return len(cards) == HAND_SIZE and values == _ACE_HIGH_VALUES


def is_royal_sequence(cards: Sequence[Card]) -> bool:
    """10, J, Q, K, A of one suit in exactly that order."""

    if len(cards) != len(ROYAL_SEQUENCE) or not is_flush(cards):
        return False
    return all(card.rank is rank for card, rank in zip(cards, ROYAL_SEQUENCE))


def alternates_colors(cards: Sequence[Card]) -> bool:
    """Return ``True`` when no two neighbouring cards share a color."""

    return all(cards[i].color is not cards[i - 1].color for i in range(1, len(cards)))


def classify_hand(cards: Sequence[Card]) -> HandRank:
    """Return the best poker hand formed by a five-card window."""

    counts = sorted(Counter(card.rank for card in cards).values(), reverse=True)
    flush = len(cards) == HAND_SIZE and is_flush(cards)
    straight = len(cards) == HAND_SIZE and is_straight(cards)

    if flush and is_royal_sequence(cards):
        return HandRank.ROYAL_FLUSH
    if flush and straight:
        return HandRank.STRAIGHT_FLUSH
    if counts[0] == 4:
        return HandRank.FOUR_OF_A_KIND
    if counts[:2] == [3, 2]:
        return HandRank.FULL_HOUSE
    if flush:
        return HandRank.FLUSH
    if straight:
        return HandRank.STRAIGHT
    if counts[0] == 3:
        return HandRank.THREE_OF_A_KIND
    if counts[:2] == [2, 2]:
        return HandRank.TWO_PAIR
    if counts[0] == 2:
        return HandRank.PAIR
    return HandRank.HIGH_CARD


def find_consecutive_poker_hands(
    cards: Sequence[Card],
) -> dict[HandRank, list[tuple[int, Sequence[Card]]]]:
    """Classify every five-card window independently.

    Overlapping windows are never merged: a long run yields one entry per
    qualifying window.
    """

    found: dict[HandRank, list[tuple[int, Sequence[Card]]]] = {rank: [] for rank in REPORTED_HANDS}
    for start, window in windows(cards, HAND_SIZE):
        hand = classify_hand(window)
        if hand in found:
            found[hand].append((start, window))
    return found
