"""SQLite persistence for users, shuffles, achievements and share analytics."""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
import string
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, Sequence

from .achievements import CardCount, UserStats
from .cards import Card, Deck
from .errors import AuthError, DatabaseError, NotFoundError, ValidationError
from .validation import parse_cards

__all__ = ["ShuffleRecord", "ShuffleStore", "ANALYTICS_ACTIONS"]

logger = logging.getLogger(__name__)

ANALYTICS_ACTIONS = frozenset({"view", "share", "copy"})
_SHARE_ALPHABET = string.ascii_letters + string.digits
_RECENT_HISTORY = 50
_TOP_CARDS = 5

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS users(
        id TEXT PRIMARY KEY,
        username TEXT UNIQUE,
        total_shuffles INTEGER NOT NULL DEFAULT 0,
        shuffle_streak INTEGER NOT NULL DEFAULT 0,
        achievements_count INTEGER NOT NULL DEFAULT 0,
        last_shuffle_date TEXT,
        created_at TEXT NOT NULL)""",
    """CREATE TABLE IF NOT EXISTS shuffles(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL REFERENCES users(id),
        cards TEXT NOT NULL,
        created_at TEXT NOT NULL,
        is_saved INTEGER NOT NULL DEFAULT 0,
        is_shared INTEGER NOT NULL DEFAULT 0,
        share_code TEXT UNIQUE,
        saved_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS achievements(
        user_id TEXT NOT NULL REFERENCES users(id),
        achievement_id TEXT NOT NULL,
        shuffle_id INTEGER REFERENCES shuffles(id),
        achieved_at TEXT NOT NULL,
        PRIMARY KEY(user_id, achievement_id))""",
    """CREATE TABLE IF NOT EXISTS shuffle_analytics(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        shuffle_id INTEGER NOT NULL REFERENCES shuffles(id),
        user_id TEXT,
        action TEXT NOT NULL,
        created_at TEXT NOT NULL)""",
    "CREATE INDEX IF NOT EXISTS idx_shuffles_user ON shuffles(user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_analytics_shuffle ON shuffle_analytics(shuffle_id)",
)


@dataclass(frozen=True, slots=True)
class ShuffleRecord:
    """A persisted shuffle."""

    id: int
    user_id: str
    cards: Deck
    created_at: datetime
    is_saved: bool = False
    is_shared: bool = False
    share_code: str | None = None


def _encode_cards(cards: Sequence[Card]) -> str:
    return json.dumps([{"suit": card.suit.value, "value": card.rank.value, "index": card.index} for card in cards])


def _decode_cards(raw: str | None) -> Deck:
    try:
        records = json.loads(raw or "[]")
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable card payload")
        return ()
    if not isinstance(records, list):
        return ()
    return parse_cards(records)


def _record(row: sqlite3.Row) -> ShuffleRecord:
    return ShuffleRecord(
        id=row["id"],
        user_id=row["user_id"],
        cards=_decode_cards(row["cards"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        is_saved=bool(row["is_saved"]),
        is_shared=bool(row["is_shared"]),
        share_code=row["share_code"],
    )


def _next_streak(current: int, last_date: str | None, moment: datetime) -> int:
    today = moment.date()
    if last_date is None:
        return 1
    last = datetime.fromisoformat(last_date).date()
    if last == today:
        return max(current, 1)
    if last == today - timedelta(days=1):
        return current + 1
    return 1


class ShuffleStore:
    """Thin repository over an SQLite database file.

    Multi-statement writes run inside a single transaction so counters and
    rows never drift apart.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as exc:
            raise DatabaseError(f"Unable to open database at {self.path}", details={"error": str(exc)}) from exc

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "ShuffleStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _query(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise DatabaseError("Query failed", details={"error": str(exc)}) from exc

    def _transaction(self) -> "_Transaction":
        return _Transaction(self._conn)

    # -- users -------------------------------------------------------------

    def ensure_user(self, user_id: str, username: str | None = None) -> None:
        """Create ``user_id`` when missing and optionally set its username."""

        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users(id, username, created_at) VALUES(?, ?, ?)",
                (user_id, username, datetime.now().isoformat()),
            )
            if username is not None:
                taken = conn.execute(
                    "SELECT id FROM users WHERE username = ? AND id != ?", (username, user_id)
                ).fetchone()
                if taken is not None:
                    raise ValidationError("Username already taken", details={"username": username})
                conn.execute("UPDATE users SET username = ? WHERE id = ?", (username, user_id))

    def username(self, user_id: str) -> str | None:
        rows = self._query("SELECT username FROM users WHERE id = ?", (user_id,))
        return rows[0]["username"] if rows else None

    def get_user_stats(self, user_id: str, depth: int = 5) -> UserStats:
        """Return counters and the cards most often dealt in the first ``depth`` positions."""

        rows = self._query(
            "SELECT total_shuffles, shuffle_streak, achievements_count FROM users WHERE id = ?", (user_id,)
        )
        if not rows:
            return UserStats()
        user = rows[0]
        recent = self._query(
            "SELECT cards FROM shuffles WHERE user_id = ? ORDER BY id DESC LIMIT ?", (user_id, _RECENT_HISTORY)
        )
        counts: Counter[Card] = Counter()
        for row in recent:
            counts.update(_decode_cards(row["cards"])[:depth])
        most_common = tuple(CardCount(card=card, count=count) for card, count in counts.most_common(_TOP_CARDS))
        return UserStats(
            total_shuffles=max(user["total_shuffles"], 0),
            shuffle_streak=max(user["shuffle_streak"], 0),
            achievements_count=max(user["achievements_count"], 0),
            most_common_cards=most_common,
        )

    # -- shuffles ----------------------------------------------------------

    def record_shuffle(self, user_id: str, cards: Sequence[Card], moment: datetime) -> ShuffleRecord:
        """Append a shuffle and advance the user's counters in one transaction."""

        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users(id, created_at) VALUES(?, ?)", (user_id, moment.isoformat())
            )
            user = conn.execute(
                "SELECT shuffle_streak, last_shuffle_date FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            streak = _next_streak(user["shuffle_streak"], user["last_shuffle_date"], moment)
            cursor = conn.execute(
                "INSERT INTO shuffles(user_id, cards, created_at) VALUES(?, ?, ?)",
                (user_id, _encode_cards(cards), moment.isoformat()),
            )
            conn.execute(
                """UPDATE users SET total_shuffles = total_shuffles + 1, shuffle_streak = ?,
                   last_shuffle_date = ? WHERE id = ?""",
                (streak, moment.date().isoformat(), user_id),
            )
            shuffle_id = cursor.lastrowid
        logger.info("Recorded shuffle %s for %s (streak %s)", shuffle_id, user_id, streak)
        return ShuffleRecord(id=shuffle_id, user_id=user_id, cards=tuple(cards), created_at=moment)

    def get_shuffle(self, shuffle_id: int) -> ShuffleRecord | None:
        rows = self._query("SELECT * FROM shuffles WHERE id = ?", (shuffle_id,))
        return _record(rows[0]) if rows else None

    def _owned_shuffle(self, conn: sqlite3.Connection, user_id: str, shuffle_id: int) -> sqlite3.Row:
        row = conn.execute("SELECT * FROM shuffles WHERE id = ?", (shuffle_id,)).fetchone()
        if row is None:
            raise NotFoundError("Shuffle not found", details={"shuffle_id": shuffle_id})
        if row["user_id"] != user_id:
            raise AuthError(
                "Not authorized to modify this shuffle",
                code="FORBIDDEN",
                details={"shuffle_id": shuffle_id},
            )
        return row

    def _new_share_code(self, conn: sqlite3.Connection, length: int) -> str:
        while True:
            code = "".join(secrets.choice(_SHARE_ALPHABET) for _ in range(length))
            if conn.execute("SELECT 1 FROM shuffles WHERE share_code = ?", (code,)).fetchone() is None:
                return code

    def set_saved(
        self,
        user_id: str,
        shuffle_id: int,
        saved: bool,
        share_code_length: int = 10,
        max_saved: int = 100,
    ) -> ShuffleRecord:
        """Mark a shuffle as saved (or not), generating a share code on first save."""

        with self._transaction() as conn:
            row = self._owned_shuffle(conn, user_id, shuffle_id)
            if saved and not row["is_saved"]:
                (count,) = conn.execute(
                    "SELECT COUNT(*) FROM shuffles WHERE user_id = ? AND is_saved = 1", (user_id,)
                ).fetchone()
                if count >= max_saved:
                    raise ValidationError(
                        f"You can keep at most {max_saved} saved shuffles",
                        code="SAVED_LIMIT_REACHED",
                        details={"limit": max_saved},
                    )
            code = row["share_code"]
            if saved and not code:
                code = self._new_share_code(conn, share_code_length)
            conn.execute(
                "UPDATE shuffles SET is_saved = ?, share_code = ?, saved_at = ? WHERE id = ?",
                (int(saved), code, datetime.now().isoformat() if saved else None, shuffle_id),
            )
            updated = conn.execute("SELECT * FROM shuffles WHERE id = ?", (shuffle_id,)).fetchone()
        return _record(updated)

    def set_shared(self, user_id: str, shuffle_id: int, share_code_length: int = 10) -> ShuffleRecord:
        """Publish a shuffle, reusing its share code when it already has one."""

        with self._transaction() as conn:
            row = self._owned_shuffle(conn, user_id, shuffle_id)
            if not (row["is_shared"] and row["share_code"]):
                code = row["share_code"] or self._new_share_code(conn, share_code_length)
                conn.execute("UPDATE shuffles SET is_shared = 1, share_code = ? WHERE id = ?", (code, shuffle_id))
            updated = conn.execute("SELECT * FROM shuffles WHERE id = ?", (shuffle_id,)).fetchone()
        return _record(updated)

    def get_shared(self, code: str) -> ShuffleRecord | None:
        rows = self._query("SELECT * FROM shuffles WHERE share_code = ? AND is_shared = 1", (code.strip(),))
        return _record(rows[0]) if rows else None

    def list_shuffles(
        self, user_id: str, saved_only: bool = False, page: int = 1, page_size: int = 10
    ) -> list[ShuffleRecord]:
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive", details={"page": page})
        clause = " AND is_saved = 1" if saved_only else ""
        rows = self._query(
            f"SELECT * FROM shuffles WHERE user_id = ?{clause} ORDER BY id DESC LIMIT ? OFFSET ?",
            (user_id, page_size, (page - 1) * page_size),
        )
        return [_record(row) for row in rows]

    def global_count(self) -> int:
        (row,) = self._query("SELECT COUNT(*) AS total FROM shuffles")
        return row["total"]

    # -- achievements ------------------------------------------------------

    def add_achievements(
        self, user_id: str, achievement_ids: Iterable[str], shuffle_id: int | None, moment: datetime
    ) -> list[str]:
        """Insert achievements keyed on (user, id) and return only the new ones."""

        new_ids: list[str] = []
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users(id, created_at) VALUES(?, ?)", (user_id, moment.isoformat())
            )
            for achievement_id in dict.fromkeys(achievement_ids):
                cursor = conn.execute(
                    """INSERT OR IGNORE INTO achievements(user_id, achievement_id, shuffle_id, achieved_at)
                       VALUES(?, ?, ?, ?)""",
                    (user_id, achievement_id, shuffle_id, moment.isoformat()),
                )
                if cursor.rowcount:
                    new_ids.append(achievement_id)
            if new_ids:
                conn.execute(
                    "UPDATE users SET achievements_count = achievements_count + ? WHERE id = ?",
                    (len(new_ids), user_id),
                )
        if new_ids:
            logger.info("Unlocked %s for %s", ", ".join(new_ids), user_id)
        return new_ids

    def user_achievements(self, user_id: str) -> dict[str, datetime]:
        rows = self._query(
            "SELECT achievement_id, achieved_at FROM achievements WHERE user_id = ? ORDER BY achieved_at",
            (user_id,),
        )
        return {row["achievement_id"]: datetime.fromisoformat(row["achieved_at"]) for row in rows}

    # -- leaderboard & analytics ------------------------------------------

    def leaderboard_rows(self) -> list[dict[str, Any]]:
        rows = self._query(
            """SELECT id, COALESCE(username, id) AS username, total_shuffles, shuffle_streak,
                      achievements_count FROM users WHERE total_shuffles > 0 ORDER BY id"""
        )
        return [dict(row) for row in rows]

    def record_analytics(self, shuffle_id: int, user_id: str | None, action: str) -> None:
        if action not in ANALYTICS_ACTIONS:
            raise ValidationError("Valid action is required", details={"action": action})
        with self._transaction() as conn:
            if conn.execute("SELECT 1 FROM shuffles WHERE id = ?", (shuffle_id,)).fetchone() is None:
                raise NotFoundError("Shuffle not found", details={"shuffle_id": shuffle_id})
            if action != "view":
                if user_id is None:
                    raise AuthError("Authentication required")
                self._owned_shuffle(conn, user_id, shuffle_id)
            conn.execute(
                "INSERT INTO shuffle_analytics(shuffle_id, user_id, action, created_at) VALUES(?, ?, ?, ?)",
                (shuffle_id, user_id, action, datetime.now().isoformat()),
            )

    def analytics_counts(self, shuffle_id: int) -> dict[str, int]:
        rows = self._query(
            "SELECT action, COUNT(*) AS total FROM shuffle_analytics WHERE shuffle_id = ? GROUP BY action",
            (shuffle_id,),
        )
        return {row["action"]: row["total"] for row in rows}


class _Transaction:
    """Context manager committing on success and rolling back on any error."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def __enter__(self) -> sqlite3.Connection:
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                self._conn.commit()
            except sqlite3.Error as error:
                self._conn.rollback()
                raise DatabaseError("Commit failed", details={"error": str(error)}) from error
            return False
        self._conn.rollback()
        if issubclass(exc_type, sqlite3.Error):
            raise DatabaseError("Write failed", details={"error": str(exc)}) from exc
        return False
