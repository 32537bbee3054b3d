"""Pattern detection over an ordered deck.

``find_patterns`` makes a bounded number of passes over the deck and reports
every pattern it recognises. Three granularities are covered:

* windowed poker hands, where every qualifying window is reported and
  overlapping windows are never merged;
* first-occurrence windowed patterns, where only the earliest qualifying
  window is reported;
* whole-deck and positional patterns tied to absolute positions.

The detector assumes a well-formed deck; raw records go through
:mod:`shuffler.validation` first.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from .cards import DECK_SIZE, Card, Color, Rank, Suit, create_deck
from .hands import HandRank, alternates_colors, find_consecutive_poker_hands, is_flush, is_straight, windows

__all__ = ["PatternType", "Pattern", "find_patterns", "pattern_ids"]


class PatternType(str, Enum):
    """Fixed enumeration of pattern families."""

    SEQUENCE = "sequence"
    STRAIGHT = "straight"
    FLUSH = "flush"
    THREE_OF_A_KIND = "three"
    FOUR_OF_A_KIND = "four"
    FULL_HOUSE = "full_house"
    STRAIGHT_FLUSH = "straight_flush"
    ROYAL_FLUSH = "royal_flush"
    TWO_PAIR = "two_pair"
    SPECIAL = "special"
    LEGENDARY = "legendary"


@dataclass(frozen=True, slots=True)
class Pattern:
    """A structural property detected in a deck."""

    id: str
    name: str
    description: str
    type: PatternType
    indices: tuple[int, ...] = ()


Detector = Callable[[Sequence[Card]], Optional[Pattern]]

_PRIME_POSITIONS = (1, 2, 4, 6, 10, 12)
_CORNER_POSITIONS = (0, 12, 39, 51)
_PRIME_VALUES = frozenset({2, 3, 5, 7, 11, 13})
_EVEN_RANKS = frozenset({Rank.TWO, Rank.FOUR, Rank.SIX, Rank.EIGHT, Rank.TEN})
_CANONICAL_DECK = create_deck()

_POKER_PATTERNS: tuple[tuple[HandRank, str, str, PatternType], ...] = (
    (HandRank.STRAIGHT, "straight", "Straight", PatternType.STRAIGHT),
    (HandRank.FLUSH, "flush", "Flush", PatternType.FLUSH),
    (HandRank.FULL_HOUSE, "full_house", "Full House", PatternType.FULL_HOUSE),
    (HandRank.STRAIGHT_FLUSH, "straight_flush", "Straight Flush", PatternType.STRAIGHT_FLUSH),
    (HandRank.ROYAL_FLUSH, "royal_flush", "Royal Flush", PatternType.ROYAL_FLUSH),
)


def _span(start: int, size: int) -> tuple[int, ...]:
    return tuple(range(start, start + size))


def _positions(start: int, size: int) -> str:
    return f"positions {start + 1} to {start + size}"


def _same_rank(cards: Sequence[Card]) -> bool:
    return all(card.rank is cards[0].rank for card in cards)


def _same_color(cards: Sequence[Card]) -> bool:
    return all(card.color is cards[0].color for card in cards)


def _first_window(
    cards: Sequence[Card], size: int, predicate: Callable[[Sequence[Card]], bool]
) -> int | None:
    for start, window in windows(cards, size):
        if predicate(window):
            return start
    return None


# --- windowed hands, every qualifying window --------------------------------


def _rank_runs(cards: Sequence[Card]) -> Iterable[Pattern]:
    for start, window in windows(cards, 3):
        if _same_rank(window):
            yield Pattern(
                "three_of_a_kind",
                "Three of a Kind",
                f"Three {window[0].rank.value}s in consecutive {_positions(start, 3)}",
                PatternType.THREE_OF_A_KIND,
                _span(start, 3),
            )
    for start, window in windows(cards, 4):
        if _same_rank(window):
            yield Pattern(
                "four_of_a_kind",
                "Four of a Kind",
                f"Four {window[0].rank.value}s in consecutive {_positions(start, 4)}",
                PatternType.FOUR_OF_A_KIND,
                _span(start, 4),
            )


def _two_pairs(cards: Sequence[Card]) -> Iterable[Pattern]:
    for start, window in windows(cards, 4):
        counts = Counter(card.rank for card in window)
        if sorted(counts.values()) == [2, 2]:
            yield Pattern(
                "two_pair",
                "Two Pair",
                f"Two pairs in consecutive {_positions(start, 4)}",
                PatternType.TWO_PAIR,
                _span(start, 4),
            )


def _poker_hands(cards: Sequence[Card]) -> Iterable[Pattern]:
    found = find_consecutive_poker_hands(cards)
    for hand, pattern_id, name, pattern_type in _POKER_PATTERNS:
        for start, window in found[hand]:
            listed = ", ".join(str(position + 1) for position in _span(start, len(window)))
            if hand is HandRank.STRAIGHT:
                description = f"Straight from {window[0].rank.value} to {window[-1].rank.value} at positions {listed}"
            elif hand is HandRank.FLUSH:
                description = f"Flush of {window[0].suit.value} at positions {listed}"
            else:
                description = f"{name} at positions {listed}"
            yield Pattern(pattern_id, name, description, pattern_type, _span(start, len(window)))


# --- first-occurrence windowed patterns -------------------------------------


def _royal_family(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 4, lambda w: all(card.is_face for card in w))
    if start is None:
        return None
    return Pattern("royal_family", "Royal Family", "4 consecutive face cards in a row", PatternType.SPECIAL, _span(start, 4))


def _perfect_suit(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 6, is_flush)
    if start is None:
        return None
    suit = cards[start].suit.value
    return Pattern(
        "perfect_suit", "Perfect Suit", f"6 {suit} in a row from {_positions(start, 6)}", PatternType.SPECIAL, _span(start, 6)
    )


def _is_stairway(window: Sequence[Card]) -> bool:
    values = [card.value for card in window]
    return values == sorted(values) and values[-1] - values[0] == len(values) - 1


def _is_highway(window: Sequence[Card]) -> bool:
    values = [card.value for card in window]
    return values == sorted(values, reverse=True) and values[0] - values[-1] == len(values) - 1


def _stairway_to_heaven(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 7, _is_stairway)
    if start is None:
        return None
    return Pattern(
        "stairway_to_heaven",
        "Stairway to Heaven",
        f"7 cards in ascending order from {_positions(start, 7)}",
        PatternType.SEQUENCE,
        _span(start, 7),
    )


def _highway_to_hell(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 7, _is_highway)
    if start is None:
        return None
    return Pattern(
        "highway_to_hell",
        "Highway to Hell",
        f"7 cards in descending order from {_positions(start, 7)}",
        PatternType.SEQUENCE,
        _span(start, 7),
    )


def _is_palindrome(window: Sequence[Card]) -> bool:
    ranks = [card.rank for card in window]
    return ranks == ranks[::-1]


def _palindrome(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 6, _is_palindrome)
    if start is None:
        return None
    return Pattern(
        "palindrome", "Palindrome", f"Palindrome pattern at {_positions(start, 6)}", PatternType.SPECIAL, _span(start, 6)
    )


def _is_rainbow(window: Sequence[Card]) -> bool:
    return len({card.suit for card in window}) == 4 and alternates_colors(window)


def _rainbow(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 4, _is_rainbow)
    if start is None:
        return None
    return Pattern(
        "rainbow",
        "Rainbow",
        f"All 4 suits with alternating colors at {_positions(start, 4)}",
        PatternType.SPECIAL,
        _span(start, 4),
    )


def _is_double_rainbow(window: Sequence[Card]) -> bool:
    first, second = window[:4], window[4:]
    if len({card.suit for card in first}) != 4:
        return False
    return all(a.suit is b.suit for a, b in zip(first, second))


def _double_rainbow(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 8, _is_double_rainbow)
    if start is None:
        return None
    return Pattern(
        "double_rainbow",
        "Double Rainbow",
        f"Four suits in the same order repeated at {_positions(start, 8)}",
        PatternType.SPECIAL,
        _span(start, 8),
    )


def _is_fibonacci_like(window: Sequence[Card]) -> bool:
    # Sums wrap modulo 13 and may miss the next value by one.
    values = [card.value for card in window]
    for j in range(2, len(values)):
        total = (values[j - 1] + values[j - 2]) % 13
        target = 13 if values[j] == 13 else values[j] % 13
        if abs(total - target) > 1:
            return False
    return True


def _fibonacci_sequence(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 5, _is_fibonacci_like)
    if start is None:
        return None
    return Pattern(
        "fibonacci_sequence",
        "Fibonacci Sequence",
        f"Fibonacci-like sequence at {_positions(start, 5)}",
        PatternType.SPECIAL,
        _span(start, 5),
    )


def _prime_values(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 5, lambda w: all(card.value in _PRIME_VALUES for card in w))
    if start is None:
        return None
    return Pattern(
        "prime_values",
        "Prime Numbers",
        f"5 cards with prime values at {_positions(start, 5)}",
        PatternType.SPECIAL,
        _span(start, 5),
    )


def _sum_thirteen(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 2, lambda w: w[0].blackjack_value + w[1].blackjack_value == 13)
    if start is None:
        return None
    return Pattern(
        "sum_thirteen",
        "Lucky Sum",
        f"Cards at positions {start + 1} and {start + 2} sum to 13 using blackjack values",
        PatternType.SPECIAL,
        _span(start, 2),
    )


def _color_gradient(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 8, _same_color)
    if start is None:
        return None
    color = cards[start].color.value
    return Pattern(
        "color_gradient",
        "Color Gradient",
        f"8 {color} cards in a row from {_positions(start, 8)}",
        PatternType.SPECIAL,
        _span(start, 8),
    )


def _is_balanced(window: Sequence[Card]) -> bool:
    if any(card.is_face or card.rank is Rank.ACE for card in window):
        return False
    return sum(1 for card in window if card.color is Color.RED) == len(window) // 2


def _perfect_balance(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 10, _is_balanced)
    if start is None:
        return None
    return Pattern(
        "perfect_balance",
        "Perfect Balance",
        f"Perfect balance of red and black (excluding J,Q,K,A) starting at position {start + 1}",
        PatternType.SPECIAL,
        _span(start, 10),
    )


def _is_sequential_trio(window: Sequence[Card]) -> bool:
    return is_flush(window) and all(window[i].value == window[i - 1].value + 1 for i in range(1, len(window)))


def _sequential_trio(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 3, _is_sequential_trio)
    if start is None:
        return None
    suit = cards[start].suit.value
    return Pattern(
        "sequential_trio",
        "Sequential Trio",
        f"3 sequential {suit} cards at {_positions(start, 3)}",
        PatternType.SEQUENCE,
        _span(start, 3),
    )


def _is_sandwich(window: Sequence[Card]) -> bool:
    return window[0].suit is window[2].suit and window[1].suit is not window[0].suit


def _the_sandwich(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 3, _is_sandwich)
    if start is None:
        return None
    return Pattern(
        "the_sandwich",
        "The Sandwich",
        f"A {cards[start + 1].suit.value} card between two {cards[start].suit.value} at {_positions(start, 3)}",
        PatternType.SPECIAL,
        _span(start, 3),
    )


def _alternates_parity(window: Sequence[Card]) -> bool:
    return all(window[i].value % 2 != window[i - 1].value % 2 for i in range(1, len(window)))


def _even_odd_pattern(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 6, _alternates_parity)
    if start is None:
        return None
    return Pattern(
        "even_odd_pattern",
        "Even Odd Pattern",
        f"Alternating even/odd values at {_positions(start, 6)}",
        PatternType.SPECIAL,
        _span(start, 6),
    )


def _perfect_order(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 13, lambda w: is_flush(w) and _is_stairway(w))
    if start is None:
        return None
    suit = cards[start].suit.value
    return Pattern(
        "perfect_order",
        "Perfect Order",
        f"All 13 {suit} cards in perfect order from {_positions(start, 13)}",
        PatternType.LEGENDARY,
        _span(start, 13),
    )


def _next_rank(rank: Rank) -> Rank:
    ordered = Rank.ordered()
    return ordered[(ordered.index(rank) + 1) % len(ordered)]


def _is_quad_sequence(window: Sequence[Card]) -> bool:
    first, second = window[:4], window[4:]
    return _same_rank(first) and _same_rank(second) and second[0].rank is _next_rank(first[0].rank)


def _quad_sequence(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 8, _is_quad_sequence)
    if start is None:
        return None
    first, second = cards[start].rank.value, cards[start + 4].rank.value
    return Pattern(
        "quad_sequence",
        "Quad Sequence",
        f"All four {first}s followed by all four {second}s from {_positions(start, 8)}",
        PatternType.LEGENDARY,
        _span(start, 8),
    )


def _is_royal_procession(window: Sequence[Card]) -> bool:
    if not all(card.is_face for card in window):
        return False
    counts = Counter(card.rank for card in window)
    return all(counts[rank] == 4 for rank in (Rank.JACK, Rank.QUEEN, Rank.KING))


def _royal_procession(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 12, _is_royal_procession)
    if start is None:
        return None
    return Pattern(
        "royal_procession",
        "Royal Procession",
        f"All 12 face cards in consecutive {_positions(start, 12)}",
        PatternType.LEGENDARY,
        _span(start, 12),
    )


def _perfect_bridge(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 26, alternates_colors)
    if start is None:
        return None
    return Pattern(
        "perfect_bridge",
        "Perfect Bridge",
        f"Perfect alternating colors for 26 cards from {_positions(start, 26)}",
        PatternType.LEGENDARY,
        _span(start, 26),
    )


def _symmetrical_suits(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 12, lambda w: [c.suit for c in w] == [c.suit for c in reversed(w)])
    if start is None:
        return None
    return Pattern(
        "symmetrical_suits",
        "Symmetrical Suits",
        f"Symmetrical suit pattern for 12 cards from {_positions(start, 12)}",
        PatternType.LEGENDARY,
        _span(start, 12),
    )


def _is_flush_quads(window: Sequence[Card]) -> bool:
    blocks = [window[i : i + 4] for i in range(0, 16, 4)]
    return all(all(card.suit is suit for card in block) for block, suit in zip(blocks, Suit))


def _consecutive_flush_quads(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 16, _is_flush_quads)
    if start is None:
        return None
    return Pattern(
        "consecutive_flush_quads",
        "Consecutive Flush Quads",
        f"Four hearts, four diamonds, four clubs and four spades from {_positions(start, 16)}",
        PatternType.LEGENDARY,
        _span(start, 16),
    )


def _consecutive_runs(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 15, lambda w: all(is_straight(w[i : i + 5]) for i in (0, 5, 10)))
    if start is None:
        return None
    return Pattern(
        "consecutive_runs",
        "Consecutive Runs",
        f"Three consecutive straights from {_positions(start, 15)}",
        PatternType.LEGENDARY,
        _span(start, 15),
    )


def _is_segregated(window: Sequence[Card]) -> bool:
    first, second = window[:13], window[13:]
    if first[0].suit is second[0].suit:
        return False
    return all(is_flush(half) and len({card.rank for card in half}) == 13 for half in (first, second))


def _suit_segregation(cards: Sequence[Card]) -> Pattern | None:
    start = _first_window(cards, 26, _is_segregated)
    if start is None:
        return None
    first, second = cards[start].suit.value, cards[start + 13].suit.value
    return Pattern(
        "suit_segregation",
        "Suit Segregation",
        f"All 13 {first} followed by all 13 {second} from {_positions(start, 26)}",
        PatternType.LEGENDARY,
        _span(start, 26),
    )


# --- whole-deck and positional patterns --------------------------------------


def _symmetric(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 4 or not alternates_colors(cards):
        return None
    return Pattern(
        "symmetric",
        "Symmetric Shuffle",
        "The entire deck alternates between red and black cards",
        PatternType.SPECIAL,
    )


def _perfect_sequence(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) != DECK_SIZE or tuple(cards) != _CANONICAL_DECK:
        return None
    return Pattern(
        "perfect_sequence",
        "Perfect Sequence",
        "The whole deck is in suit-major ascending order",
        PatternType.LEGENDARY,
        _span(0, DECK_SIZE),
    )


def _four_suits_opening(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 4 or len({card.suit for card in cards[:4]}) != 4:
        return None
    return Pattern(
        "four_suits_opening", "Four Suits Opening", "All four suits in the first 4 cards", PatternType.SPECIAL, _span(0, 4)
    )


def _four_aces(cards: Sequence[Card]) -> Pattern | None:
    positions = [position for position, card in enumerate(cards) if card.rank is Rank.ACE]
    if len(positions) != 4 or positions[3] - positions[0] != 3:
        return None
    return Pattern(
        "four_aces", "Four Aces in a Row", "All four aces in consecutive positions", PatternType.SPECIAL, tuple(positions)
    )


def _lucky_thirteen(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 13 or cards[12].rank is not Rank.ACE:
        return None
    return Pattern("lucky_thirteen", "Lucky Thirteen", "Card #13 is an Ace", PatternType.SPECIAL, (12,))


def _unlucky_shuffle(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 13 or cards[12] != Card(Suit.SPADES, Rank.KING):
        return None
    return Pattern("unlucky_shuffle", "Unlucky Shuffle", "The 13th card is the King of Spades", PatternType.SPECIAL, (12,))


def _prime_position(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) <= _PRIME_POSITIONS[-1]:
        return None
    color = cards[_PRIME_POSITIONS[0]].color
    if any(cards[position].color is not color for position in _PRIME_POSITIONS):
        return None
    return Pattern(
        "prime_position",
        "Prime Position",
        f"Cards at positions 2, 3, 5, 7, 11, and 13 are all {color.value}",
        PatternType.SPECIAL,
        _PRIME_POSITIONS,
    )


def _four_corners(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < DECK_SIZE:
        return None
    suit = cards[0].suit
    if any(cards[position].suit is not suit for position in _CORNER_POSITIONS):
        return None
    return Pattern(
        "four_corners",
        "Four Corners",
        f"All four corners (1st, 13th, 40th, and 52nd cards) are {suit.value}",
        PatternType.SPECIAL,
        _CORNER_POSITIONS,
    )


def _opening_color(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 13 or not _same_color(cards[:13]):
        return None
    if cards[0].color is Color.RED:
        return Pattern("all_red", "Seeing Red", "First 13 cards are all red", PatternType.SPECIAL, _span(0, 13))
    return Pattern("all_black", "Back in Black", "First 13 cards are all black", PatternType.SPECIAL, _span(0, 13))


def _mirror_shuffle(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) != DECK_SIZE:
        return None
    half = DECK_SIZE // 2
    if [card.rank for card in cards[:half]] != [card.rank for card in reversed(cards[half:])]:
        return None
    return Pattern(
        "mirror_shuffle",
        "Mirror Shuffle",
        "The first 26 cards mirror the last 26 cards in reverse order by rank",
        PatternType.LEGENDARY,
        _span(0, DECK_SIZE),
    )


def _agent_007(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 7 or cards[6] != Card(Suit.SPADES, Rank.SEVEN):
        return None
    return Pattern("agent_007", "Agent 007", "The 7 of Spades sits in 7th position", PatternType.SPECIAL, (6,))


def _even_start(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 5 or any(card.rank not in _EVEN_RANKS for card in cards[:5]):
        return None
    return Pattern("even_start", "Even Start", "The first 5 cards are all even", PatternType.SPECIAL, _span(0, 5))


def _queens_early(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 10:
        return None
    positions = tuple(position for position, card in enumerate(cards[:10]) if card.rank is Rank.QUEEN)
    if len(positions) != 4:
        return None
    return Pattern("queens_early", "Queen's Court", "All four queens in the first 10 cards", PatternType.SPECIAL, positions)


def _blackjack(cards: Sequence[Card]) -> Pattern | None:
    if len(cards) < 2 or cards[0].blackjack_value + cards[1].blackjack_value != 21:
        return None
    return Pattern("blackjack", "Blackjack", "The first two cards make 21", PatternType.SPECIAL, (0, 1))


_SINGLE_DETECTORS: tuple[Detector, ...] = (
    _four_aces,
    _royal_family,
    _lucky_thirteen,
    _perfect_suit,
    _stairway_to_heaven,
    _highway_to_hell,
    _prime_position,
    _palindrome,
    _four_corners,
    _unlucky_shuffle,
    _symmetric,
    _opening_color,
    _rainbow,
    _double_rainbow,
    _fibonacci_sequence,
    _prime_values,
    _sum_thirteen,
    _color_gradient,
    _perfect_balance,
    _sequential_trio,
    _the_sandwich,
    _even_odd_pattern,
    _four_suits_opening,
    _agent_007,
    _even_start,
    _queens_early,
    _blackjack,
    _perfect_order,
    _quad_sequence,
    _royal_procession,
    _mirror_shuffle,
    _perfect_bridge,
    _symmetrical_suits,
    _consecutive_flush_quads,
    _consecutive_runs,
    _suit_segregation,
    _perfect_sequence,
)


def find_patterns(cards: Sequence[Card]) -> list[Pattern]:
    """Return every pattern recognised in ``cards``."""

    deck = tuple(cards)
    patterns: list[Pattern] = []
    patterns.extend(_rank_runs(deck))
    patterns.extend(_poker_hands(deck))
    patterns.extend(_two_pairs(deck))
    for detector in _SINGLE_DETECTORS:
        found = detector(deck)
        if found is not None:
            patterns.append(found)
    return patterns


def pattern_ids(patterns: Iterable[Pattern]) -> set[str]:
    """Return the distinct ids present in ``patterns``."""

    return {pattern.id for pattern in patterns}
