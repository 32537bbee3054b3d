from __future__ import annotations

import os
from pathlib import Path

import pytest

from shuffler.config import ShufflerConfig, load_config


def test_defaults_live_under_the_home_directory() -> None:
    config = load_config(environ={})

    assert config == ShufflerConfig()
    assert config.database_path.name == "shuffler.db"
    assert config.log_dir.name == "logs"
    assert config.leaderboard_page_size == 20
    assert config.share_code_length == 10


def test_environment_overrides_are_typed(tmp_path: Path) -> None:
    config = load_config(
        environ={
            "SHUFFLER_DATABASE_PATH": str(tmp_path / "db.sqlite"),
            "SHUFFLER_LOG_CONSOLE_LEVEL": "debug",
            "SHUFFLER_RATE_LIMIT": "5",
            "SHUFFLER_RATE_WINDOW": "2.5",
            "SHUFFLER_HISTORY_PAGE_SIZE": " ",
            "UNRELATED": "1",
        }
    )

    assert config.database_path == tmp_path / "db.sqlite"
    assert config.log_console_level == "DEBUG"
    assert config.rate_limit == 5
    assert config.rate_window == 2.5
    assert config.history_page_size == 10


@pytest.mark.parametrize(
    "environ",
    [
        {"SHUFFLER_RATE_LIMIT": "many"},
        {"SHUFFLER_SHARE_CODE_LENGTH": "3"},
        {"SHUFFLER_LEADERBOARD_PAGE_SIZE": "0"},
    ],
)
def test_invalid_values_raise(environ: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        load_config(environ=environ)


def test_env_file_is_loaded(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SHUFFLER_MAX_SAVED_SHUFFLES=7\n", encoding="utf-8")
    os.environ.pop("SHUFFLER_MAX_SAVED_SHUFFLES", None)

    try:
        config = load_config(env_file)
    finally:
        os.environ.pop("SHUFFLER_MAX_SAVED_SHUFFLES", None)

    assert config.max_saved_shuffles == 7
