"""Process-wide logging setup.

- console: Rich handler at ``config.log_console_level`` (WARNING by default)
- ``app.log``: everything at INFO and above
- ``error.log``: ERROR and above
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import ShufflerConfig

__all__ = ["setup_logging"]

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def _rotating_handler(path: Path, level: int, fmt: logging.Formatter) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(config: ShufflerConfig, console: Console | None = None) -> Path:
    """Reset the root logger's handlers and return the log directory."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)

    console_level = getattr(logging, config.log_console_level.upper(), logging.WARNING)
    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        level=console_level,
        show_path=False,
        rich_tracebacks=True,
    )
    root.addHandler(rich_handler)

    fmt = logging.Formatter(_FORMAT)
    log_dir = config.log_dir
    root.addHandler(_rotating_handler(log_dir / "app.log", logging.INFO, fmt))
    root.addHandler(_rotating_handler(log_dir / "error.log", logging.ERROR, fmt))

    # Keep terminal UI internals out of the application log.
    logging.getLogger("textual").setLevel(logging.WARNING)

    return log_dir
