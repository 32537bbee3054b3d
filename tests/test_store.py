from __future__ import annotations

import random
from datetime import datetime
from pathlib import Path

import pytest

from shuffler.cards import Card, Rank, Suit, create_deck, shuffle_deck
from shuffler.errors import AuthError, NotFoundError, ValidationError
from shuffler.store import ShuffleStore


@pytest.fixture()
def store(tmp_path: Path):
    with ShuffleStore(tmp_path / "shuffler.db") as store:
        yield store


def _deck(seed: int = 0):
    return shuffle_deck(create_deck(), random.Random(seed))


def test_schema_is_created_on_open(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "shuffler.db"

    with ShuffleStore(path) as store:
        assert store.global_count() == 0

    assert path.exists()


def test_ensure_user_rejects_taken_username(store: ShuffleStore) -> None:
    store.ensure_user("alice", "alice")
    store.ensure_user("alice", "alice")

    with pytest.raises(ValidationError):
        store.ensure_user("mallory", "alice")

    assert store.username("alice") == "alice"
    assert store.username("nobody") is None


def test_record_shuffle_roundtrips_cards(store: ShuffleStore) -> None:
    deck = _deck(1)

    record = store.record_shuffle("alice", deck, datetime(2024, 3, 5, 12, 0))
    loaded = store.get_shuffle(record.id)

    assert loaded is not None
    assert loaded.cards == deck
    assert [card.index for card in loaded.cards] == list(range(52))
    assert loaded.user_id == "alice"
    assert not loaded.is_saved
    assert store.get_shuffle(9999) is None


@pytest.mark.parametrize(
    ("moments", "expected"),
    [
        ([datetime(2024, 3, 5, 9), datetime(2024, 3, 5, 22)], 1),
        ([datetime(2024, 3, 5, 9), datetime(2024, 3, 6, 1), datetime(2024, 3, 7, 23)], 3),
        ([datetime(2024, 3, 5, 9), datetime(2024, 3, 6, 9), datetime(2024, 3, 9, 9)], 1),
        ([datetime(2024, 2, 28, 9), datetime(2024, 2, 29, 9), datetime(2024, 3, 1, 9)], 3),
    ],
)
def test_streak_rules(store: ShuffleStore, moments: list[datetime], expected: int) -> None:
    for moment in moments:
        store.record_shuffle("alice", _deck(), moment)

    stats = store.get_user_stats("alice")

    assert stats.shuffle_streak == expected
    assert stats.total_shuffles == len(moments)


def test_user_stats_for_unknown_user_are_zero(store: ShuffleStore) -> None:
    stats = store.get_user_stats("ghost")

    assert stats.total_shuffles == 0
    assert stats.most_common_cards == ()


def test_most_common_cards_count_leading_positions(store: ShuffleStore) -> None:
    for _ in range(3):
        store.record_shuffle("alice", create_deck(), datetime(2024, 3, 5, 12))
    store.record_shuffle("alice", _deck(7), datetime(2024, 3, 5, 13))

    stats = store.get_user_stats("alice", depth=2)
    top = stats.most_common_cards[0]

    assert len(stats.most_common_cards) <= 5
    assert top.card in (Card(Suit.HEARTS, Rank.ACE), Card(Suit.HEARTS, Rank.TWO))
    assert top.count >= 3


def test_malformed_stored_cards_are_skipped(store: ShuffleStore) -> None:
    store.ensure_user("alice")
    with store._conn:
        cursor = store._conn.execute(
            "INSERT INTO shuffles(user_id, cards, created_at) VALUES(?, ?, ?)",
            (
                "alice",
                '[{"suit": "hearts", "value": "A"}, {"suit": "moon", "value": "3"}, {"suit": "spades", "value": "K"}]',
                datetime(2024, 3, 5).isoformat(),
            ),
        )

    record = store.get_shuffle(cursor.lastrowid)

    assert record is not None
    assert record.cards == (Card(Suit.HEARTS, Rank.ACE), Card(Suit.SPADES, Rank.KING))
    assert [card.index for card in record.cards] == [0, 1]


def test_add_achievements_returns_only_new_ids(store: ShuffleStore) -> None:
    record = store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))
    moment = datetime(2024, 3, 5, 12)

    first = store.add_achievements("alice", ["first_shuffle", "flush", "flush"], record.id, moment)
    second = store.add_achievements("alice", ["flush", "streak_3"], record.id, moment)

    assert first == ["first_shuffle", "flush"]
    assert second == ["streak_3"]
    assert store.get_user_stats("alice").achievements_count == 3
    assert set(store.user_achievements("alice")) == {"first_shuffle", "flush", "streak_3"}


def test_save_generates_share_code_once(store: ShuffleStore) -> None:
    record = store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))

    saved = store.set_saved("alice", record.id, True, share_code_length=8)
    unsaved = store.set_saved("alice", record.id, False)
    resaved = store.set_saved("alice", record.id, True)

    assert saved.is_saved
    assert saved.share_code is not None and len(saved.share_code) == 8
    assert saved.share_code.isalnum()
    assert not unsaved.is_saved
    assert resaved.share_code == saved.share_code


def test_ownership_is_enforced(store: ShuffleStore) -> None:
    record = store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))

    with pytest.raises(AuthError) as excinfo:
        store.set_saved("bob", record.id, True)
    assert excinfo.value.code == "FORBIDDEN"

    with pytest.raises(AuthError):
        store.set_shared("bob", record.id)

    with pytest.raises(NotFoundError):
        store.set_saved("alice", 4242, True)


def test_saved_limit(store: ShuffleStore) -> None:
    moment = datetime(2024, 3, 5, 12)
    records = [store.record_shuffle("alice", _deck(seed), moment) for seed in range(3)]
    store.set_saved("alice", records[0].id, True, max_saved=2)
    store.set_saved("alice", records[1].id, True, max_saved=2)

    with pytest.raises(ValidationError) as excinfo:
        store.set_saved("alice", records[2].id, True, max_saved=2)

    assert excinfo.value.code == "SAVED_LIMIT_REACHED"
    assert store.set_saved("alice", records[0].id, True, max_saved=2).is_saved


def test_shared_lookup_only_finds_published_shuffles(store: ShuffleStore) -> None:
    record = store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))
    saved = store.set_saved("alice", record.id, True)

    assert store.get_shared(saved.share_code) is None

    shared = store.set_shared("alice", record.id)

    assert shared.is_shared
    assert shared.share_code == saved.share_code
    found = store.get_shared(f"  {saved.share_code} ")
    assert found is not None and found.id == record.id


def test_list_shuffles_pages_newest_first(store: ShuffleStore) -> None:
    ids = [store.record_shuffle("alice", _deck(seed), datetime(2024, 3, 5, 12)).id for seed in range(5)]
    store.set_saved("alice", ids[1], True)

    first_page = store.list_shuffles("alice", page=1, page_size=2)
    last_page = store.list_shuffles("alice", page=3, page_size=2)
    saved = store.list_shuffles("alice", saved_only=True)

    assert [record.id for record in first_page] == [ids[4], ids[3]]
    assert [record.id for record in last_page] == [ids[0]]
    assert [record.id for record in saved] == [ids[1]]
    assert store.list_shuffles("bob") == []

    with pytest.raises(ValidationError):
        store.list_shuffles("alice", page=0)


def test_leaderboard_rows_skip_idle_users(store: ShuffleStore) -> None:
    store.ensure_user("idle", "idler")
    store.ensure_user("alice", "alice_w")
    store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))
    store.record_shuffle("anon-1", _deck(), datetime(2024, 3, 5, 12))

    rows = {row["id"]: row for row in store.leaderboard_rows()}

    assert set(rows) == {"alice", "anon-1"}
    assert rows["alice"]["username"] == "alice_w"
    assert rows["anon-1"]["username"] == "anon-1"
    assert store.global_count() == 2


def test_analytics_rules(store: ShuffleStore) -> None:
    record = store.record_shuffle("alice", _deck(), datetime(2024, 3, 5, 12))

    store.record_analytics(record.id, None, "view")
    store.record_analytics(record.id, "bob", "view")
    store.record_analytics(record.id, "alice", "copy")

    with pytest.raises(ValidationError):
        store.record_analytics(record.id, "alice", "like")
    with pytest.raises(NotFoundError):
        store.record_analytics(9999, "alice", "view")
    with pytest.raises(AuthError) as anonymous:
        store.record_analytics(record.id, None, "share")
    with pytest.raises(AuthError) as stranger:
        store.record_analytics(record.id, "bob", "share")

    assert anonymous.value.code == "AUTH_REQUIRED"
    assert stranger.value.code == "FORBIDDEN"
    assert store.analytics_counts(record.id) == {"view": 2, "copy": 1}
