# src/tasktalk/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from ..errors import ValidationError


class TaskType(StrEnum):
    EPIC = "epic"
    TASK = "task"
    SUBTASK = "subtask"

    @classmethod
    def parse(cls, raw: str | None) -> TaskType:
        if raw is None or not str(raw).strip():
            raise ValidationError("Task type is required")
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValidationError(f"Unknown task type: {raw}. Allowed: {allowed}") from None


class TaskStatus(StrEnum):
    """
    Workflow status, in board order.

    OPEN is the initial state for new tasks.
    """

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    REQUIRES_CLARIFICATION = "requires_clarification"
    READY = "ready"
    DONE = "done"

    @classmethod
    def initial(cls) -> TaskStatus:
        return cls.OPEN

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus:
        if raw is None or not str(raw).strip():
            raise ValidationError("Task status is required")
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"Unknown task status: {raw}. Allowed: {allowed}") from None

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.OPEN
        try:
            return cls(raw)
        except ValueError:
            return cls.OPEN


def parse_text(raw: str | None, field_name: str) -> str:
    """Trim and require a non-empty text field."""
    value = (raw or "").strip()
    if not value:
        raise ValidationError(f"Task {field_name} is required")
    return value


def format_code(prefix: str, number: int) -> str:
    return f"{prefix}-{int(number):04d}"


@dataclass(frozen=True, slots=True)
class TaskRef:
    """Lightweight reference used for parents/children (no recursive expansion)."""

    id: int
    code: str
    title: str


@dataclass(slots=True)
class Task:
    id: int
    code: str
    type: TaskType
    title: str
    description: str
    status: TaskStatus
    created_at: float
    updated_at: float

    parents: list[TaskRef] = field(default_factory=list)
    children: list[TaskRef] = field(default_factory=list)

    @property
    def created_at_iso(self) -> str:
        return datetime.fromtimestamp(self.created_at, tz=UTC).replace(microsecond=0).isoformat()

    def as_ref(self) -> TaskRef:
        return TaskRef(id=self.id, code=self.code, title=self.title)
