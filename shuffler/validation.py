"""Ingestion boundary between loosely typed records and the pure engine.

Everything coming from storage, the command line or another process passes
through here. Malformed cards are dropped with a warning so that one corrupt
record never aborts evaluation of the rest.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from .cards import Card, Deck, Rank, Suit, parse_code, reindex
from .errors import ValidationError

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .achievements import UserStats

__all__ = [
    "parse_card",
    "parse_cards",
    "ensure_cards",
    "parse_user_stats",
    "validate_username",
    "MIN_USERNAME_LENGTH",
    "MAX_USERNAME_LENGTH",
]

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 20
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _parse_suit(raw: Any) -> Suit | None:
    if isinstance(raw, Suit):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return Suit(raw.strip().lower())
    except ValueError:
        return None


def _parse_rank(raw: Any) -> Rank | None:
    if isinstance(raw, Rank):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool) and 1 <= raw <= 13:
        return Rank.ordered()[raw - 1]
    if not isinstance(raw, str):
        return None
    try:
        return Rank(raw.strip().upper())
    except ValueError:
        return None


def parse_card(record: Any) -> Card | None:
    """Return a :class:`Card` for ``record`` or ``None`` when malformed.

    Accepts cards, ``{"suit": ..., "value": ...}`` mappings (``rank`` is
    accepted in place of ``value``) and compact codes such as ``"QS"``.
    """

    if isinstance(record, Card):
        return record
    if isinstance(record, str):
        try:
            return parse_code(record)
        except ValueError:
            logger.warning("Skipping malformed card code %r", record)
            return None
    if isinstance(record, Mapping):
        suit = _parse_suit(record.get("suit"))
        rank = _parse_rank(record.get("value", record.get("rank")))
        if suit is not None and rank is not None:
            return Card(suit=suit, rank=rank)
    logger.warning("Skipping malformed card record %r", record)
    return None


def parse_cards(records: Iterable[Any] | None) -> Deck:
    """Parse ``records`` skipping malformed entries, then reindex."""

    if records is None:
        return ()
    parsed = (parse_card(record) for record in records)
    return reindex(card for card in parsed if card is not None)


def ensure_cards(cards: Iterable[Any] | None) -> Deck:
    """Return ``cards`` as a deck, parsing only when needed."""

    if isinstance(cards, tuple) and all(isinstance(card, Card) for card in cards):
        return cards
    return parse_cards(cards)


def _counter(record: Mapping[str, Any], key: str) -> int:
    raw = record.get(key)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(value, 0)


def parse_user_stats(record: Mapping[str, Any] | None) -> "UserStats":
    """Build :class:`~shuffler.achievements.UserStats` from a loose mapping."""

    from .achievements import CardCount, UserStats  # Local import to avoid cycles

    record = record or {}
    most_common: list[CardCount] = []
    for entry in record.get("most_common_cards") or ():
        if not isinstance(entry, Mapping):
            continue
        card = parse_card(entry.get("card"))
        if card is None:
            continue
        most_common.append(CardCount(card=card, count=_counter(entry, "count")))
    return UserStats(
        total_shuffles=_counter(record, "total_shuffles"),
        shuffle_streak=_counter(record, "shuffle_streak"),
        achievements_count=_counter(record, "achievements_count"),
        most_common_cards=tuple(most_common),
    )


def validate_username(name: str) -> str:
    """Return the trimmed username or raise :class:`ValidationError`."""

    trimmed = (name or "").strip()
    if not MIN_USERNAME_LENGTH <= len(trimmed) <= MAX_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be {MIN_USERNAME_LENGTH}-{MAX_USERNAME_LENGTH} characters",
            details={"field": "username", "length": len(trimmed)},
        )
    if not _USERNAME_RE.match(trimmed):
        raise ValidationError(
            "Username may only contain letters, digits, '_' and '-'",
            details={"field": "username"},
        )
    return trimmed
