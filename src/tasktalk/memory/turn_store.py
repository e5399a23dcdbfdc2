# src/tasktalk/memory/turn_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Turn:
    id: int
    user_text: str
    assistant_reply: str
    created_at: float

    @property
    def created_at_iso(self) -> str:
        return datetime.fromtimestamp(self.created_at, tz=UTC).replace(microsecond=0).isoformat()


class TurnStore:
    """
    SQLite store for conversation turns (user message + assistant reply).

    Turns are append-only: there is no update, only append and bulk clear.

    Thread-safety:
    - each operation opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "messages.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_turns()
        except Exception:
            total = -1
        logger.info("TurnStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_text TEXT NOT NULL,
                    bot_reply TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_created ON messages(created_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_turn(row: sqlite3.Row) -> Turn:
        return Turn(
            id=int(row["id"]),
            user_text=str(row["user_text"] or ""),
            assistant_reply=str(row["bot_reply"] or ""),
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- public API ----

    def count_turns(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM messages").fetchone()
            return int(n)
        finally:
            conn.close()

    def append_turn(self, user_text: str, assistant_reply: str) -> Turn:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT INTO messages(user_text, bot_reply, created_at) VALUES (?, ?, ?)",
                (user_text, assistant_reply, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for messages insert")
            turn = Turn(id=int(rowid), user_text=user_text, assistant_reply=assistant_reply, created_at=now)
            logger.debug("Turn saved id=%s", turn.id)
            return turn
        finally:
            conn.close()

    def recent_turns(self, limit: int = 10) -> list[Turn]:
        """Most recent turns, newest first."""
        if limit <= 0:
            return []
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM messages ORDER BY created_at DESC, id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
            return [self._row_to_turn(r) for r in rows]
        finally:
            conn.close()

    def clear_turns(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM messages")
            conn.commit()
            removed = int(cur.rowcount or 0)
            logger.info("TurnStore cleared removed=%s", removed)
            return removed
        finally:
            conn.close()
