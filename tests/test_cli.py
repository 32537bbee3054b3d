from __future__ import annotations

import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from shuffler.achievements import ACHIEVEMENTS
from shuffler.cli.main import app
from shuffler.store import ShuffleStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture()
def env(tmp_path: Path) -> dict[str, str | None]:
    return {
        "SHUFFLER_DATABASE_PATH": str(tmp_path / "shuffler.db"),
        "SHUFFLER_LOG_DIR": str(tmp_path / "logs"),
        "SHUFFLER_USER": None,
    }


def _invoke(env: dict[str, str | None], *args: str):
    return runner.invoke(app, list(args), env=env)


def test_anonymous_shuffle(env: dict[str, str | None]) -> None:
    result = _invoke(env, "shuffle", "--seed", "4")

    assert result.exit_code == 0, result.output
    assert "Anonymous shuffle" in result.output
    with ShuffleStore(env["SHUFFLER_DATABASE_PATH"]) as store:
        assert store.global_count() == 0


def test_user_shuffle_then_stats_and_history(env: dict[str, str | None], tmp_path: Path) -> None:
    first = _invoke(env, "shuffle", "--user", "alice", "--seed", "1")
    second = _invoke(env, "shuffle", "-u", "alice", "--seed", "2")
    stats = _invoke(env, "stats", "--user", "alice")
    history = _invoke(env, "history", "--user", "alice")

    assert first.exit_code == 0, first.output
    assert "Shuffle #1" in first.output
    assert second.exit_code == 0, second.output
    assert stats.exit_code == 0, stats.output
    assert "2 shuffle(s) recorded by everyone" in stats.output
    assert history.exit_code == 0, history.output
    assert "Shuffle History" in history.output
    assert (tmp_path / "logs" / "app.log").exists()


def test_achievements_and_leaderboard(env: dict[str, str | None]) -> None:
    _invoke(env, "shuffle", "--user", "alice", "--seed", "1")

    board = _invoke(env, "achievements", "--user", "alice")
    ranking = _invoke(env, "leaderboard", "--sort", "achievement_count")

    assert board.exit_code == 0, board.output
    assert f"/{len(ACHIEVEMENTS)}" in board.output
    assert ranking.exit_code == 0, ranking.output
    assert "alice" in ranking.output


def test_save_share_and_view(env: dict[str, str | None]) -> None:
    _invoke(env, "shuffle", "--user", "alice", "--seed", "1")

    saved = _invoke(env, "save", "1", "--user", "alice")
    shared = _invoke(env, "share", "1", "--user", "alice")
    with ShuffleStore(env["SHUFFLER_DATABASE_PATH"]) as store:
        record = store.get_shuffle(1)
    assert record is not None and record.share_code
    viewed = _invoke(env, "shared", record.share_code)

    assert saved.exit_code == 0, saved.output
    assert "Saved shuffle #1" in saved.output
    assert shared.exit_code == 0, shared.output
    assert viewed.exit_code == 0, viewed.output
    assert "Shuffled" in viewed.output


def test_other_user_cannot_save(env: dict[str, str | None]) -> None:
    _invoke(env, "shuffle", "--user", "alice", "--seed", "1")

    result = _invoke(env, "save", "1", "--user", "bob")

    assert result.exit_code == 1
    assert "Not authorized" in result.output


def test_unknown_share_code_exits(env: dict[str, str | None]) -> None:
    result = _invoke(env, "shared", "nothinghere")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_username_exits(env: dict[str, str | None]) -> None:
    result = _invoke(env, "shuffle", "--user", "a b")

    assert result.exit_code == 1
    assert "Username" in result.output


def test_simulate_without_patterns(env: dict[str, str | None]) -> None:
    result = _invoke(env, "simulate", "--trials", "50", "--seed", "3", "--no-patterns")

    assert result.exit_code == 0, result.output
    assert "Shuffle Uniformity" in result.output
    assert "Pattern Frequency" not in result.output


def test_shared_shuffle_with_unreadable_cards(env: dict[str, str | None]) -> None:
    with ShuffleStore(env["SHUFFLER_DATABASE_PATH"]) as store:
        store.ensure_user("alice")
        with store._conn:
            store._conn.execute(
                """INSERT INTO shuffles(user_id, cards, created_at, is_shared, share_code)
                   VALUES(?, ?, ?, 1, ?)""",
                ("alice", "not json", "2024-03-05T12:00:00", "brokencode"),
            )

    result = _invoke(env, "shared", "brokencode")

    assert result.exit_code == 0, result.output
    assert "No cards" in result.output
    assert "Shuffled 2024-03-05 12:00" in result.output
