"""Card abstractions, deck construction and shuffling."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Sequence, Tuple

__all__ = [
    "Suit",
    "Rank",
    "Color",
    "Card",
    "Deck",
    "DECK_SIZE",
    "create_deck",
    "shuffle_deck",
    "reindex",
    "parse_code",
    "card_stats",
]

DECK_SIZE = 52


class Suit(str, Enum):
    """The four suits, in canonical deck order."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    @property
    def symbol(self) -> str:
        return _SUIT_SYMBOLS[self]

    @property
    def letter(self) -> str:
        return self.value[0].upper()


class Rank(str, Enum):
    """Card ranks ordered ace low."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @classmethod
    def ordered(cls) -> tuple["Rank", ...]:
        """Return ranks in deck order (ace low)."""

        return tuple(cls)

    @property
    def number(self) -> int:
        """Numeric rank with A=1, J=11, Q=12, K=13."""

        return Rank.ordered().index(self) + 1


class Color(str, Enum):
    RED = "red"
    BLACK = "black"


_SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}

_FACE_RANKS = frozenset({Rank.JACK, Rank.QUEEN, Rank.KING})


@dataclass(frozen=True, slots=True)
class Card:
    """Value object describing one card and its position in a deck.

    ``index`` is positional metadata only: two cards with the same suit and
    rank compare equal wherever they sit.
    """

    suit: Suit
    rank: Rank
    index: int = field(default=0, compare=False)

    @property
    def color(self) -> Color:
        if self.suit in (Suit.HEARTS, Suit.DIAMONDS):
            return Color.RED
        return Color.BLACK

    @property
    def value(self) -> int:
        return self.rank.number

    @property
    def blackjack_value(self) -> int:
        """Value used in sum contexts: faces count 10 and the ace 11."""

        if self.rank is Rank.ACE:
            return 11
        return min(self.value, 10)

    @property
    def is_face(self) -> bool:
        return self.rank in _FACE_RANKS

    @property
    def code(self) -> str:
        return f"{self.rank.value}{self.suit.letter}"

    @property
    def key(self) -> str:
        return f"{self.rank.value}-{self.suit.value}"

    def label(self) -> str:
        """Create a display label suitable for CLI representations."""

        return f"{self.rank.value}{self.suit.symbol}"

    def at(self, index: int) -> "Card":
        """Return a copy of the card placed at ``index``."""

        return replace(self, index=index)


Deck = Tuple[Card, ...]


def create_deck() -> Deck:
    """Return the 52 cards in suit-major order, indexed by position."""

    cards: list[Card] = []
    for suit in Suit:
        for rank in Rank.ordered():
            cards.append(Card(suit=suit, rank=rank, index=len(cards)))
    return tuple(cards)


def reindex(cards: Iterable[Card]) -> Deck:
    """Return ``cards`` with ``index`` rewritten to 0..n-1."""

    return tuple(card.at(position) for position, card in enumerate(cards))


_SYSTEM_RANDOM = random.SystemRandom()


def shuffle_deck(deck: Sequence[Card], rng: random.Random | None = None) -> Deck:
    """Return a uniformly shuffled copy of ``deck``.

    Runs the reverse Fisher-Yates walk: each position from the end down to 1
    swaps with a uniformly chosen position at or before it.
    """

    source = rng if rng is not None else _SYSTEM_RANDOM
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = source.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return reindex(shuffled)


def parse_code(code: str) -> Card:
    """Parse a compact code such as ``QS`` or ``10H``."""

    text = code.strip().upper()
    if len(text) < 2:
        raise ValueError(f"invalid card code '{code}'")
    rank_text, suit_letter = text[:-1], text[-1]
    suit = next((suit for suit in Suit if suit.letter == suit_letter), None)
    if suit is None:
        raise ValueError(f"invalid suit in card code '{code}'")
    try:
        rank = Rank(rank_text)
    except ValueError as exc:
        raise ValueError(f"invalid rank in card code '{code}'") from exc
    return Card(suit=suit, rank=rank)


def card_stats(shuffles: Iterable[Sequence[Card]], depth: int | None = None) -> dict[str, int]:
    """Count card keys across ``shuffles``.

    When ``depth`` is given only the first ``depth`` positions of each
    shuffle are counted.
    """

    counts: Counter[str] = Counter()
    for shuffle in shuffles:
        head = shuffle if depth is None else shuffle[:depth]
        counts.update(card.key for card in head)
    return dict(counts)
