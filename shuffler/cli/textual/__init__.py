"""Interactive Textual front-end."""

from .app import ShuffleApp, run_textual_app

__all__ = ["ShuffleApp", "run_textual_app"]
