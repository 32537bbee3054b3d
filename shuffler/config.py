"""Runtime configuration for the shuffler collaborators."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

__all__ = ["ShufflerConfig", "load_config", "ENV_PREFIX"]

ENV_PREFIX = "SHUFFLER_"


def _default_home() -> Path:
    return Path.home() / ".shuffler"


@dataclass(slots=True)
class ShufflerConfig:
    """Settings shared by the store, the service and the command line."""

    database_path: Path = field(default_factory=lambda: _default_home() / "shuffler.db")
    log_dir: Path = field(default_factory=lambda: _default_home() / "logs")
    log_console_level: str = "WARNING"
    leaderboard_page_size: int = 20
    history_page_size: int = 10
    max_saved_shuffles: int = 100
    share_code_length: int = 10
    most_common_depth: int = 5
    stats_cache_ttl: float = 30.0
    rate_limit: int = 30
    rate_window: float = 60.0

    def __post_init__(self) -> None:
        self.database_path = Path(self.database_path)
        self.log_dir = Path(self.log_dir)
        if self.leaderboard_page_size <= 0 or self.history_page_size <= 0:
            raise ValueError("page sizes must be positive")
        if self.share_code_length < 6:
            raise ValueError("share_code_length must be at least 6")
        if self.rate_limit <= 0 or self.rate_window <= 0:
            raise ValueError("rate limit and window must be positive")


def load_config(env_file: str | Path | None = None, environ: Mapping[str, str] | None = None) -> ShufflerConfig:
    """Build a :class:`ShufflerConfig` from ``SHUFFLER_*`` environment variables.

    ``env_file`` (or a ``.env`` in the working directory) is loaded first
    without overriding variables that are already set.
    """

    if environ is None:
        load_dotenv(env_file, override=False)
        environ = os.environ
    overrides: dict[str, object] = {}
    for setting in fields(ShufflerConfig):
        raw = environ.get(ENV_PREFIX + setting.name.upper())
        if raw is None or raw.strip() == "":
            continue
        raw = raw.strip()
        if setting.name in ("database_path", "log_dir"):
            overrides[setting.name] = Path(raw).expanduser()
        elif setting.name == "log_console_level":
            overrides[setting.name] = raw.upper()
        elif setting.name in ("stats_cache_ttl", "rate_window"):
            overrides[setting.name] = float(raw)
        else:
            overrides[setting.name] = int(raw)
    return ShufflerConfig(**overrides)  # type: ignore[arg-type]
