from __future__ import annotations

from dataclasses import fields
from datetime import datetime

import pytest

from shuffler.achievements import (
    ACHIEVEMENTS,
    AchievementCategory,
    UserStats,
    check_achievements,
    check_pattern_achievements,
    check_shuffle_achievements,
    check_time_achievements,
    get_achievement,
    get_unlocked_achievements,
)
from shuffler.cards import create_deck, parse_code, reindex
from shuffler.checks import TimeFlags
from shuffler.patterns import find_patterns


def _ids(achievements) -> list[str]:
    return [achievement.id for achievement in achievements]


def test_catalog_ids_are_unique() -> None:
    ids = _ids(ACHIEVEMENTS)

    assert len(ids) == len(set(ids))


def test_time_bindings_name_real_flags() -> None:
    flag_names = {flag.name for flag in fields(TimeFlags)}

    for achievement in ACHIEVEMENTS:
        if achievement.time_flag is not None:
            assert achievement.time_flag in flag_names
            assert achievement.category is AchievementCategory.TIME


def test_every_achievement_has_exactly_one_trigger() -> None:
    for achievement in ACHIEVEMENTS:
        triggers = [
            achievement.condition,
            achievement.pattern_id,
            achievement.shuffle_check,
            achievement.time_flag,
        ]
        assert sum(trigger is not None for trigger in triggers) == 1, achievement.id


def test_novice_shuffler_unlocks_at_ten() -> None:
    unlocked = get_unlocked_achievements(UserStats(total_shuffles=10))
    names = [achievement.name for achievement in unlocked]

    assert "First Shuffle" in names
    assert "Novice Shuffler" in names
    assert "Shuffle Enthusiast" not in names


@pytest.mark.parametrize(
    ("stats", "expected", "missing"),
    [
        (UserStats(shuffle_streak=7), {"streak_3", "streak_7"}, {"streak_30"}),
        (UserStats(achievements_count=10), {"collector_5", "collector_10"}, {"collector_25"}),
        (UserStats(total_shuffles=1000), {"thousand_shuffles", "five_hundred_shuffles"}, set()),
        (UserStats(), set(), {"first_shuffle"}),
    ],
)
def test_stats_conditions(stats: UserStats, expected: set[str], missing: set[str]) -> None:
    unlocked = set(_ids(get_unlocked_achievements(stats)))

    assert expected <= unlocked
    assert not (missing & unlocked)


def test_unlocked_achievements_are_idempotent_and_ordered() -> None:
    stats = UserStats(total_shuffles=120, shuffle_streak=4, achievements_count=6)

    first = get_unlocked_achievements(stats)
    second = get_unlocked_achievements(stats)
    catalog = _ids(ACHIEVEMENTS)

    assert first == second
    positions = [catalog.index(achievement.id) for achievement in first]
    assert positions == sorted(positions)


def test_fresh_deck_shuffle_achievements() -> None:
    fired = check_shuffle_achievements(create_deck())

    assert "flush" in fired
    assert "suited_run" in fired
    assert "in_order" in fired
    assert "alternating_colors" not in fired


def test_pattern_achievements_follow_detected_patterns() -> None:
    fired = check_pattern_achievements(find_patterns(create_deck()))

    assert {"perfect_sequence", "perfect_order", "straight_flush", "stairway_to_heaven"} <= set(fired)
    assert check_pattern_achievements([]) == []


def test_time_achievements() -> None:
    fired = check_time_achievements(datetime(2024, 2, 29, 10, 0))

    assert {"leap_day", "early_bird", "on_the_hour"} <= set(fired)
    assert "new_year" not in fired


def test_check_achievements_combines_every_trigger() -> None:
    earned = check_achievements(create_deck(), 1, datetime(2021, 1, 1, 0, 30))
    ids = _ids(earned)

    assert {"first_shuffle", "perfect_sequence", "in_order", "new_year", "midnight_shuffle"} <= set(ids)
    assert len(ids) == len(set(ids))
    catalog = _ids(ACHIEVEMENTS)
    assert [catalog.index(identifier) for identifier in ids] == sorted(catalog.index(i) for i in ids)


def test_shuffle_count_triggers_only_on_exact_total() -> None:
    at_ten = _ids(check_achievements(create_deck(), 10))
    at_eleven = _ids(check_achievements(create_deck(), 11))

    assert "ten_shuffles" in at_ten
    assert "ten_shuffles" not in at_eleven
    assert "first_shuffle" not in at_ten


def test_check_achievements_without_moment_skips_time() -> None:
    earned = check_achievements(create_deck(), 3)

    assert all(achievement.category is not AchievementCategory.TIME for achievement in earned)


def test_get_achievement() -> None:
    novice = get_achievement("ten_shuffles")

    assert novice is not None
    assert novice.name == "Novice Shuffler"
    assert novice.shuffle_count == 10
    assert get_achievement("does_not_exist") is None


def test_sandwich_achievement_follows_its_pattern() -> None:
    achievement = get_achievement("the_sandwich")
    cards = reindex(parse_code(code) for code in ("2H", "9S", "5H"))

    assert achievement is not None
    assert achievement.pattern_id == "the_sandwich"
    assert check_pattern_achievements(find_patterns(cards)) == ["the_sandwich"]
