"""Who is shuffling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

__all__ = ["Identity", "StaticIdentity", "ANONYMOUS"]


class Identity(Protocol):
    def current_user(self) -> Optional[str]:
        """Return the active user id or ``None`` for anonymous sessions."""


@dataclass(frozen=True, slots=True)
class StaticIdentity:
    """Identity resolver returning a fixed user (or nobody)."""

    user_id: Optional[str] = None

    def current_user(self) -> Optional[str]:
        return self.user_id


ANONYMOUS = StaticIdentity()
