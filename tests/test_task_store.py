# tests/test_task_store.py

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

from tasktalk.errors import NotFoundError, ValidationError
from tasktalk.tasks.task_models import TaskStatus, TaskType
from tasktalk.tasks.task_store import TaskStore


def _mk(store: TaskStore, title: str, type: str = "task", **kw):
    return store.create_task(type=type, title=title, description=f"{title} description", **kw)


def test_codes_are_sequential_and_never_reused(task_store: TaskStore) -> None:
    t1 = _mk(task_store, "One")
    t2 = _mk(task_store, "Two")
    assert (t1.code, t2.code) == ("TASK-0001", "TASK-0002")

    # deleting the newest task must not free its code
    task_store.delete_task(t2.id)
    t3 = _mk(task_store, "Three")
    assert t3.code == "TASK-0003"

    task_store.delete_task(t1.id)
    assert _mk(task_store, "Four").code == "TASK-0004"


def test_code_prefix_is_configurable(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "t.sqlite3", code_prefix="req")
    assert store.code_prefix == "REQ"
    assert _mk(store, "First").code == "REQ-0001"

    with pytest.raises(ValueError):
        TaskStore(tmp_path / "bad.sqlite3", code_prefix="  ")


def test_prefix_characters_are_matched_literally(tmp_path: Path) -> None:
    db = tmp_path / "shared.sqlite3"
    axb = TaskStore(db, code_prefix="AXB")
    for i in range(3):
        _mk(axb, f"x{i}")

    # '_' and '%' must not act as wildcards over the AXB codes
    assert _mk(TaskStore(db, code_prefix="A_B"), "first").code == "A_B-0001"
    assert _mk(TaskStore(db, code_prefix="A%"), "first").code == "A%-0001"
    assert _mk(axb, "next").code == "AXB-0004"


def test_concurrent_creates_get_unique_codes(task_store: TaskStore) -> None:
    errors: list[BaseException] = []
    codes: list[str] = []
    lock = threading.Lock()

    def worker(n: int) -> None:
        try:
            for i in range(5):
                t = _mk(task_store, f"w{n}-{i}")
                with lock:
                    codes.append(t.code)
        except BaseException as e:  # pragma: no cover - surfaced by the assert below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert errors == []
    assert len(codes) == 30
    assert len(set(codes)) == 30
    assert sorted(codes) == [f"TASK-{i:04d}" for i in range(1, 31)]


def test_create_defaults_and_trimming(task_store: TaskStore) -> None:
    t = task_store.create_task(type=" Epic ", title="  Billing  ", description=" Collect invoices ")
    assert t.id > 0
    assert t.type is TaskType.EPIC
    assert t.status is TaskStatus.OPEN
    assert t.title == "Billing"
    assert t.description == "Collect invoices"
    assert t.parents == [] and t.children == []
    assert t.created_at > 0
    assert t.created_at_iso.endswith("+00:00")

    t2 = _mk(task_store, "Review", status="requires_clarification")
    assert t2.status is TaskStatus.REQUIRES_CLARIFICATION


@pytest.mark.parametrize(
    "kwargs",
    [
        {"type": "story", "title": "x", "description": "y"},
        {"type": "", "title": "x", "description": "y"},
        {"type": "task", "title": "   ", "description": "y"},
        {"type": "task", "title": "x", "description": ""},
        {"type": "task", "title": "x", "description": "y", "status": "blocked"},
    ],
)
def test_create_rejects_invalid_input(task_store: TaskStore, kwargs) -> None:
    with pytest.raises(ValidationError):
        task_store.create_task(**kwargs)
    assert task_store.count_tasks() == 0


def test_relations_are_visible_from_both_sides(task_store: TaskStore) -> None:
    epic = _mk(task_store, "Epic", type="epic")
    task = _mk(task_store, "Task", parent_ids=[epic.id])
    sub = _mk(task_store, "Sub", type="subtask", parent_ids=[task.id])

    assert [p.code for p in task.parents] == [epic.code]
    assert [c.code for c in task_store.get_task(epic.id).children] == [task.code]
    assert [c.title for c in task_store.get_task(task.id).children] == ["Sub"]
    assert [p.id for p in sub.parents] == [task.id]
    assert sorted(task_store.list_links()) == [(epic.id, task.id), (task.id, sub.id)]


def test_update_replaces_relation_lists(task_store: TaskStore) -> None:
    a = _mk(task_store, "A", type="epic")
    b = _mk(task_store, "B", type="epic")
    t = _mk(task_store, "T", parent_ids=[a.id])

    updated = task_store.update_task(t.id, parent_ids=[b.id])
    assert [p.id for p in updated.parents] == [b.id]
    assert task_store.get_task(a.id).children == []

    # None leaves a side untouched, [] clears it
    updated = task_store.update_task(t.id, title="T2")
    assert [p.id for p in updated.parents] == [b.id]
    updated = task_store.update_task(t.id, parent_ids=[])
    assert updated.parents == []
    assert task_store.list_links() == []


def test_set_relations_both_sides(task_store: TaskStore) -> None:
    a = _mk(task_store, "A")
    b = _mk(task_store, "B")
    c = _mk(task_store, "C")

    task_store.set_relations(b.id, parent_ids=[a.id], child_ids=[c.id])
    assert sorted(task_store.list_links()) == [(a.id, b.id), (b.id, c.id)]

    task_store.set_relations(b.id, child_ids=[])
    assert task_store.list_links() == [(a.id, b.id)]

    with pytest.raises(NotFoundError):
        task_store.set_relations(999, parent_ids=[a.id])


def test_unknown_relation_ids_change_nothing(task_store: TaskStore) -> None:
    a = _mk(task_store, "A")
    t = _mk(task_store, "T", parent_ids=[a.id])

    with pytest.raises(ValidationError, match="999"):
        task_store.update_task(t.id, title="Renamed", parent_ids=[999])

    after = task_store.get_task(t.id)
    assert after.title == "T"
    assert [p.id for p in after.parents] == [a.id]

    with pytest.raises(ValidationError):
        _mk(task_store, "Orphan", child_ids=[12345])
    assert task_store.count_tasks() == 2


def test_self_references_and_duplicates_are_dropped(task_store: TaskStore) -> None:
    a = _mk(task_store, "A")
    t = _mk(task_store, "T")

    updated = task_store.update_task(t.id, parent_ids=[t.id, a.id, a.id], child_ids=[t.id])
    assert [p.id for p in updated.parents] == [a.id]
    assert updated.children == []
    assert task_store.list_links() == [(a.id, t.id)]


@pytest.mark.parametrize("bad", [["1"], [0], [-3], [True], [1.5]])
def test_relation_ids_must_be_positive_ints(task_store: TaskStore, bad) -> None:
    t = _mk(task_store, "T")
    with pytest.raises(ValidationError):
        task_store.update_task(t.id, child_ids=bad)


def test_update_fields_and_errors(task_store: TaskStore) -> None:
    t = _mk(task_store, "T")

    updated = task_store.update_task(t.id, status="in_progress", type="subtask", description="New")
    assert updated.status is TaskStatus.IN_PROGRESS
    assert updated.type is TaskType.SUBTASK
    assert updated.description == "New"
    assert updated.code == t.code
    assert updated.updated_at >= t.updated_at

    with pytest.raises(ValidationError, match="Nothing to update"):
        task_store.update_task(t.id)
    with pytest.raises(ValidationError):
        task_store.update_task(t.id, status="finished")
    with pytest.raises(NotFoundError):
        task_store.update_task(404, title="x")


def test_delete_removes_task_and_its_edges(task_store: TaskStore) -> None:
    a = _mk(task_store, "A", type="epic")
    t = _mk(task_store, "T", parent_ids=[a.id])
    s = _mk(task_store, "S", type="subtask", parent_ids=[t.id])

    task_store.delete_task(t.id)

    assert task_store.list_links() == []
    assert task_store.get_task(a.id).children == []
    assert task_store.get_task(s.id).parents == []
    with pytest.raises(NotFoundError):
        task_store.get_task(t.id)
    with pytest.raises(NotFoundError):
        task_store.delete_task(t.id)


def test_list_is_newest_first_and_filterable(task_store: TaskStore) -> None:
    t1 = _mk(task_store, "First")
    t2 = _mk(task_store, "Second", status="done")
    t3 = _mk(task_store, "Third", parent_ids=[t1.id])

    assert [t.id for t in task_store.list_tasks()] == [t3.id, t2.id, t1.id]

    done = task_store.list_tasks("done")
    assert [t.id for t in done] == [t2.id]

    open_tasks = task_store.list_tasks(TaskStatus.OPEN)
    assert [t.id for t in open_tasks] == [t3.id, t1.id]
    by_id = {t.id: t for t in open_tasks}
    assert [c.id for c in by_id[t1.id].children] == [t3.id]
    assert [p.id for p in by_id[t3.id].parents] == [t1.id]

    assert task_store.list_tasks("ready") == []
    with pytest.raises(ValidationError):
        task_store.list_tasks("archived")


def test_get_by_code_is_case_insensitive(task_store: TaskStore) -> None:
    t = _mk(task_store, "T")
    assert task_store.get_task_by_code("task-0001").id == t.id
    with pytest.raises(NotFoundError):
        task_store.get_task_by_code("TASK-9999")


def test_schema_migration_keeps_existing_rows(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT NOT NULL UNIQUE,
            type TEXT NOT NULL,
            description TEXT NOT NULL,
            created_at REAL NOT NULL
        )
        """
    )
    conn.execute(
        "INSERT INTO tasks(code, type, description, created_at) VALUES ('TASK-0007', 'task', 'old', 1.0)"
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    legacy = store.get_task_by_code("TASK-0007")
    assert legacy.status is TaskStatus.OPEN
    assert legacy.title == ""

    # codes already present count as issued
    assert _mk(store, "New").code == "TASK-0008"


def test_parent_child_lifecycle(task_store: TaskStore) -> None:
    a = task_store.create_task(type="task", title="Slot model", description="Define slot model")
    assert a.code == "TASK-0001"
    assert a.status is TaskStatus.initial()

    b = _mk(task_store, "Slot API", parent_ids=[a.id])
    assert [c.id for c in task_store.get_task(a.id).children] == [b.id]
    assert [p.id for p in task_store.get_task(b.id).parents] == [a.id]

    task_store.delete_task(a.id)
    assert task_store.get_task(b.id).parents == []
