# src/tasktalk/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, ValidationError
from .task_models import Task, TaskRef, TaskStatus, TaskType, format_code, parse_text

logger = logging.getLogger(__name__)

DEFAULT_CODE_PREFIX = "TASK"


class TaskStore:
    """
    SQLite task graph store: task rows + parent/child link edges.

    Schema is migration-safe in the same way for every table:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Concurrency:
    - each method opens its own SQLite connection
    - every mutation runs inside BEGIN IMMEDIATE, so writers (code assignment,
      relation replacement, deletion) are serialized by SQLite and a failing call
      leaves nothing behind
    """

    def __init__(
        self,
        db_path: str | Path = "tasks.sqlite3",
        *,
        code_prefix: str = DEFAULT_CODE_PREFIX,
    ) -> None:
        prefix = (code_prefix or "").strip().upper()
        if not prefix or "-" in prefix:
            raise ValueError("code_prefix must be a non-empty token without '-'")

        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._prefix = prefix
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s prefix=%s total=%s", self._db_path, self._prefix, total)

    @property
    def code_prefix(self) -> str:
        return self._prefix

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly by _transaction().
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def _transaction(self, *, write: bool = True) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'open',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("title", "TEXT NOT NULL DEFAULT ''")
            add_col("status", "TEXT NOT NULL DEFAULT 'open'")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_links (
                    parent_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    child_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    PRIMARY KEY (parent_id, child_id),
                    CHECK (parent_id <> child_id)
                )
                """
            )

            # Highest code number ever issued per prefix; never decremented.
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_code_seq (
                    prefix TEXT PRIMARY KEY,
                    last_value INTEGER NOT NULL
                )
                """
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_links_child ON task_links(child_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_status_created ON tasks(status, created_at)"
            )
        finally:
            conn.close()

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            code=str(row["code"]),
            type=TaskType(row["type"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def _next_code(self, conn: sqlite3.Connection) -> str:
        """Must run inside a write transaction."""
        row = conn.execute(
            "SELECT last_value FROM task_code_seq WHERE prefix = ?", (self._prefix,)
        ).fetchone()
        last = int(row["last_value"]) if row else 0

        # Codes already present (e.g. imported rows) also count as issued.
        head = f"{self._prefix}-"
        row = conn.execute(
            """
            SELECT MAX(CAST(SUBSTR(code, ?) AS INTEGER)) AS n
            FROM tasks
            WHERE UPPER(SUBSTR(code, 1, ?)) = ?
            """,
            (len(head) + 1, len(head), head),
        ).fetchone()
        existing = int(row["n"]) if row and row["n"] is not None else 0

        number = max(last, existing) + 1
        conn.execute(
            """
            INSERT INTO task_code_seq(prefix, last_value) VALUES (?, ?)
            ON CONFLICT(prefix) DO UPDATE SET last_value = excluded.last_value
            """,
            (self._prefix, number),
        )
        return format_code(self._prefix, number)

    @staticmethod
    def _exists(conn: sqlite3.Connection, task_id: int) -> bool:
        row = conn.execute("SELECT 1 FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return row is not None

    @staticmethod
    def _clean_ids(task_id: int | None, ids: Iterable[Any], side: str) -> list[int]:
        """Validate ids, drop duplicates and self references (order preserved)."""
        out: list[int] = []
        for raw in ids:
            if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
                raise ValidationError(f"Invalid {side} id: {raw!r}")
            if raw == task_id or raw in out:
                continue
            out.append(raw)
        return out

    @staticmethod
    def _require_existing(conn: sqlite3.Connection, ids: list[int]) -> None:
        if not ids:
            return
        ph = ",".join("?" for _ in ids)
        rows = conn.execute(f"SELECT id FROM tasks WHERE id IN ({ph})", ids).fetchall()
        found = {int(r["id"]) for r in rows}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValidationError(
                "Unknown task id(s) in relations: " + ", ".join(str(i) for i in missing)
            )

    def _replace_links(
        self,
        conn: sqlite3.Connection,
        task_id: int,
        *,
        parent_ids: Iterable[Any] | None,
        child_ids: Iterable[Any] | None,
    ) -> bool:
        """
        Full-replace incoming (parents) and/or outgoing (children) edges.

        Both lists are validated before anything is deleted.
        Returns True if any edge set was replaced.
        """
        parents = self._clean_ids(task_id, parent_ids, "parent") if parent_ids is not None else None
        children = self._clean_ids(task_id, child_ids, "child") if child_ids is not None else None

        self._require_existing(conn, [*(parents or []), *(children or [])])

        if parents is not None:
            conn.execute("DELETE FROM task_links WHERE child_id = ?", (task_id,))
            conn.executemany(
                "INSERT OR IGNORE INTO task_links(parent_id, child_id) VALUES (?, ?)",
                [(p, task_id) for p in parents],
            )

        if children is not None:
            conn.execute("DELETE FROM task_links WHERE parent_id = ?", (task_id,))
            conn.executemany(
                "INSERT OR IGNORE INTO task_links(parent_id, child_id) VALUES (?, ?)",
                [(task_id, c) for c in children],
            )

        return parents is not None or children is not None

    def _attach_relations(
        self,
        conn: sqlite3.Connection,
        tasks: list[Task],
        *,
        where: str = "1 = 1",
        params: tuple[Any, ...] = (),
    ) -> list[Task]:
        if not tasks:
            return tasks

        by_id = {t.id: t for t in tasks}
        rows = conn.execute(
            f"""
            SELECT l.parent_id, l.child_id,
                   p.code AS parent_code, p.title AS parent_title,
                   c.code AS child_code, c.title AS child_title
            FROM task_links l
            JOIN tasks p ON p.id = l.parent_id
            JOIN tasks c ON c.id = l.child_id
            WHERE {where}
            ORDER BY l.parent_id ASC, l.child_id ASC
            """,
            params,
        ).fetchall()

        for r in rows:
            parent_id = int(r["parent_id"])
            child_id = int(r["child_id"])
            child = by_id.get(child_id)
            if child is not None:
                child.parents.append(
                    TaskRef(id=parent_id, code=r["parent_code"], title=r["parent_title"])
                )
            parent = by_id.get(parent_id)
            if parent is not None:
                parent.children.append(
                    TaskRef(id=child_id, code=r["child_code"], title=r["child_title"])
                )
        return tasks

    def _load_task(self, conn: sqlite3.Connection, task_id: int) -> Task:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        if row is None:
            raise NotFoundError(f"Task {task_id} not found")
        task = self._row_to_task(row)
        self._attach_relations(
            conn,
            [task],
            where="l.parent_id = ? OR l.child_id = ?",
            params=(task.id, task.id),
        )
        return task

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def create_task(
        self,
        *,
        type: str,
        title: str,
        description: str,
        status: str | None = None,
        parent_ids: Iterable[Any] | None = None,
        child_ids: Iterable[Any] | None = None,
    ) -> Task:
        task_type = TaskType.parse(type)
        clean_title = parse_text(title, "title")
        clean_description = parse_text(description, "description")
        task_status = TaskStatus.parse(status) if status is not None else TaskStatus.initial()

        now = time.time()
        with self._transaction() as conn:
            code = self._next_code(conn)
            cur = conn.execute(
                """
                INSERT INTO tasks(code, type, title, description, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    code,
                    task_type.value,
                    clean_title,
                    clean_description,
                    task_status.value,
                    now,
                    now,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)

            self._replace_links(conn, task_id, parent_ids=parent_ids, child_ids=child_ids)
            task = self._load_task(conn, task_id)

        logger.debug(
            "Task created id=%s code=%s type=%s status=%s",
            task.id,
            task.code,
            task.type.value,
            task.status.value,
        )
        return task

    def update_task(
        self,
        task_id: int,
        *,
        type: str | None = None,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
        parent_ids: Iterable[Any] | None = None,
        child_ids: Iterable[Any] | None = None,
    ) -> Task:
        fields: list[str] = []
        params: list[Any] = []

        if type is not None:
            fields.append("type = ?")
            params.append(TaskType.parse(type).value)

        if title is not None:
            fields.append("title = ?")
            params.append(parse_text(title, "title"))

        if description is not None:
            fields.append("description = ?")
            params.append(parse_text(description, "description"))

        if status is not None:
            fields.append("status = ?")
            params.append(TaskStatus.parse(status).value)

        if not fields and parent_ids is None and child_ids is None:
            raise ValidationError("Nothing to update")

        fields.append("updated_at = ?")
        params.append(time.time())

        with self._transaction() as conn:
            if not self._exists(conn, task_id):
                raise NotFoundError(f"Task {task_id} not found")

            self._replace_links(conn, int(task_id), parent_ids=parent_ids, child_ids=child_ids)
            conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", (*params, int(task_id)))
            task = self._load_task(conn, task_id)

        logger.debug("Task updated id=%s fields=%s", task_id, ",".join(f.split(" ")[0] for f in fields))
        return task

    def set_relations(
        self,
        task_id: int,
        *,
        parent_ids: Iterable[Any] | None = None,
        child_ids: Iterable[Any] | None = None,
    ) -> None:
        """
        Replace the parent list and/or child list of a task.

        None leaves that side untouched; an empty list clears it.
        Self references are dropped; unknown ids raise ValidationError.
        """
        with self._transaction() as conn:
            if not self._exists(conn, task_id):
                raise NotFoundError(f"Task {task_id} not found")
            if self._replace_links(conn, int(task_id), parent_ids=parent_ids, child_ids=child_ids):
                conn.execute(
                    "UPDATE tasks SET updated_at = ? WHERE id = ?", (time.time(), int(task_id))
                )

    def get_task(self, task_id: int) -> Task:
        with self._transaction(write=False) as conn:
            return self._load_task(conn, task_id)

    def get_task_by_code(self, code: str) -> Task:
        norm = (code or "").strip().upper()
        with self._transaction(write=False) as conn:
            row = conn.execute("SELECT id FROM tasks WHERE code = ?", (norm,)).fetchone()
            if row is None:
                raise NotFoundError(f"Task {code} not found")
            return self._load_task(conn, int(row["id"]))

    def list_tasks(self, status: str | None = None) -> list[Task]:
        """All tasks (optionally filtered by status), newest first, with relations."""
        with self._transaction(write=False) as conn:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM tasks ORDER BY created_at DESC, id DESC"
                ).fetchall()
                tasks = [self._row_to_task(r) for r in rows]
                return self._attach_relations(conn, tasks)

            st = TaskStatus.parse(status).value
            rows = conn.execute(
                "SELECT * FROM tasks WHERE status = ? ORDER BY created_at DESC, id DESC",
                (st,),
            ).fetchall()
            tasks = [self._row_to_task(r) for r in rows]
            return self._attach_relations(
                conn,
                tasks,
                where=(
                    "l.parent_id IN (SELECT id FROM tasks WHERE status = ?) "
                    "OR l.child_id IN (SELECT id FROM tasks WHERE status = ?)"
                ),
                params=(st, st),
            )

    def delete_task(self, task_id: int) -> None:
        with self._transaction() as conn:
            if not self._exists(conn, task_id):
                raise NotFoundError(f"Task {task_id} not found")
            cur = conn.execute(
                "DELETE FROM task_links WHERE parent_id = ? OR child_id = ?",
                (int(task_id), int(task_id)),
            )
            links = cur.rowcount
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))

        logger.debug("Task deleted id=%s links_removed=%s", task_id, links)

    def list_links(self) -> list[tuple[int, int]]:
        """All (parent_id, child_id) edges."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT parent_id, child_id FROM task_links ORDER BY parent_id, child_id"
            ).fetchall()
            return [(int(r["parent_id"]), int(r["child_id"])) for r in rows]
        finally:
            conn.close()
