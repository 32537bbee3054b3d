from __future__ import annotations

import logging

import pytest

from shuffler.achievements import UserStats
from shuffler.cards import Card, Rank, Suit
from shuffler.errors import ValidationError
from shuffler.validation import (
    ensure_cards,
    parse_card,
    parse_cards,
    parse_user_stats,
    validate_username,
)


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        ("QS", Card(Suit.SPADES, Rank.QUEEN)),
        ({"suit": "hearts", "value": "10"}, Card(Suit.HEARTS, Rank.TEN)),
        ({"suit": "Spades", "rank": "k"}, Card(Suit.SPADES, Rank.KING)),
        ({"suit": "clubs", "value": 1}, Card(Suit.CLUBS, Rank.ACE)),
        (Card(Suit.DIAMONDS, Rank.TWO), Card(Suit.DIAMONDS, Rank.TWO)),
    ],
)
def test_parse_card_accepts_known_shapes(record: object, expected: Card) -> None:
    assert parse_card(record) == expected


@pytest.mark.parametrize(
    "record",
    [
        {"suit": "stars", "value": "A"},
        {"value": "A"},
        {"suit": "clubs", "value": 14},
        {"suit": "clubs", "value": True},
        "ZZ",
        None,
        42,
    ],
)
def test_parse_card_rejects_malformed(record: object, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="shuffler.validation")

    assert parse_card(record) is None
    assert any("malformed" in message for message in caplog.messages)


def test_parse_cards_skips_and_reindexes() -> None:
    cards = parse_cards(["AH", {"suit": "nope"}, {"suit": "spades", "value": "7"}, None])

    assert cards == (Card(Suit.HEARTS, Rank.ACE), Card(Suit.SPADES, Rank.SEVEN))
    assert [card.index for card in cards] == [0, 1]
    assert parse_cards(None) == ()


def test_ensure_cards_passes_decks_through() -> None:
    deck = (Card(Suit.HEARTS, Rank.ACE, index=5),)

    assert ensure_cards(deck) is deck
    assert ensure_cards(["AH"])[0].index == 0


def test_parse_user_stats_clamps_counters() -> None:
    stats = parse_user_stats(
        {
            "total_shuffles": "12",
            "shuffle_streak": -4,
            "achievements_count": None,
            "most_common_cards": [
                {"card": {"suit": "hearts", "value": "A"}, "count": 3},
                {"card": {"suit": "moon", "value": "A"}, "count": 9},
                "garbage",
            ],
        }
    )

    assert stats.total_shuffles == 12
    assert stats.shuffle_streak == 0
    assert stats.achievements_count == 0
    assert len(stats.most_common_cards) == 1
    assert stats.most_common_cards[0].card == Card(Suit.HEARTS, Rank.ACE)
    assert stats.most_common_cards[0].count == 3


def test_parse_user_stats_defaults() -> None:
    assert parse_user_stats(None) == UserStats()
    assert parse_user_stats({}) == UserStats()


@pytest.mark.parametrize("name", ["bob", "card_shark-99", "  alice  ", "x" * 20])
def test_validate_username_accepts(name: str) -> None:
    assert validate_username(name) == name.strip()


@pytest.mark.parametrize("name", ["", "ab", "x" * 21, "bad name", "émile", "semi;colon"])
def test_validate_username_rejects(name: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_username(name)

    assert excinfo.value.details["field"] == "username"
