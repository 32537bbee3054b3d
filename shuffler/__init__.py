"""Top-level package for the deck shuffler and its achievement engine."""

from . import achievements, cards, checks, hands, patterns

__all__ = [
    "achievements",
    "cards",
    "checks",
    "hands",
    "patterns",
]
