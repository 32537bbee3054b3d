"""Monte-Carlo checks on the shuffle generator and the pattern detector."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .cards import DECK_SIZE, create_deck, shuffle_deck
from .patterns import find_patterns

__all__ = [
    "UniformityReport",
    "position_frequencies",
    "uniformity_report",
    "pattern_frequencies",
]

CountMatrix = NDArray[np.int64]


@dataclass(frozen=True, slots=True)
class UniformityReport:
    """How far observed card-position counts stray from a uniform spread."""

    trials: int
    expected: float
    chi_square: float
    degrees_of_freedom: int
    min_ratio: float
    max_ratio: float

    def within(self, tolerance: float) -> bool:
        """True when every cell lies within ``tolerance`` of the expected count."""

        return 1.0 - tolerance <= self.min_ratio and self.max_ratio <= 1.0 + tolerance


def position_frequencies(trials: int, rng: random.Random | None = None) -> CountMatrix:
    """Shuffle ``trials`` decks and count how often each card lands at each position.

    Rows are cards in canonical order, columns are deck positions.
    """

    if trials <= 0:
        raise ValueError("trials must be positive")
    rng = rng or random.Random()
    base = create_deck()
    canonical = {card: row for row, card in enumerate(base)}
    counts = np.zeros((DECK_SIZE, DECK_SIZE), dtype=np.int64)
    positions = np.arange(DECK_SIZE)
    for _ in range(trials):
        deck = shuffle_deck(base, rng)
        rows = np.fromiter((canonical[card] for card in deck), dtype=np.int64, count=DECK_SIZE)
        counts[rows, positions] += 1
    return counts


def uniformity_report(counts: CountMatrix) -> UniformityReport:
    """Summarise a card-by-position count matrix against the uniform expectation."""

    matrix = np.asarray(counts, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("expected a square count matrix")
    size = matrix.shape[0]
    trials = int(round(matrix[:, 0].sum()))
    if trials <= 0:
        raise ValueError("count matrix is empty")
    expected = trials / size
    ratios = matrix / expected
    chi_square = float(((matrix - expected) ** 2 / expected).sum())
    return UniformityReport(
        trials=trials,
        expected=expected,
        chi_square=chi_square,
        degrees_of_freedom=(size - 1) * (size - 1),
        min_ratio=float(ratios.min()),
        max_ratio=float(ratios.max()),
    )


def pattern_frequencies(trials: int, rng: random.Random | None = None) -> Counter[str]:
    """Count, per pattern id, how many of ``trials`` shuffles contained it at least once."""

    if trials <= 0:
        raise ValueError("trials must be positive")
    rng = rng or random.Random()
    base = create_deck()
    found: Counter[str] = Counter()
    for _ in range(trials):
        deck = shuffle_deck(base, rng)
        found.update({pattern.id for pattern in find_patterns(deck)})
    return found
