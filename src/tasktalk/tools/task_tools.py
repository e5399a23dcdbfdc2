# src/tasktalk/tools/task_tools.py

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from ..core.ports import TaskRepo
from .registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)

# Kept in sync with TaskType / TaskStatus (tests assert it).
TaskTypeName = Literal["epic", "task", "subtask"]
TaskStatusName = Literal["open", "in_progress", "requires_clarification", "ready", "done"]


class _ToolArgs(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
        strict=True,
    )


class ListTasksArgs(_ToolArgs):
    """List tasks input."""

    status: TaskStatusName | None = Field(default=None, description="Optional status filter")


class CreateTaskArgs(_ToolArgs):
    """Create task input."""

    type: TaskTypeName
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: TaskStatusName | None = None
    parent_ids: list[PositiveInt] | None = Field(
        default=None, alias="parentIds", description="List of task ids"
    )
    child_ids: list[PositiveInt] | None = Field(
        default=None, alias="childIds", description="List of task ids"
    )


class UpdateTaskArgs(_ToolArgs):
    """Update task input."""

    id: PositiveInt
    type: TaskTypeName | None = None
    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    status: TaskStatusName | None = None
    parent_ids: list[PositiveInt] | None = Field(
        default=None, alias="parentIds", description="List of task ids (replaces all parents)"
    )
    child_ids: list[PositiveInt] | None = Field(
        default=None, alias="childIds", description="List of task ids (replaces all children)"
    )


class DeleteTaskArgs(_ToolArgs):
    """Delete task input."""

    id: PositiveInt


def format_task(task: Any) -> str:
    """Human-readable multi-line summary used in tool results."""
    lines = [
        f"{task.code} [{task.type}] ({task.status})",
        f"Title: {task.title}",
        f"Description: {task.description}",
        f"Created: {task.created_at_iso}",
    ]

    parents = [f"{p.code} ({p.title})" for p in task.parents]
    children = [f"{c.code} ({c.title})" for c in task.children]
    if parents:
        lines.append(f"Parents: {', '.join(parents)}")
    if children:
        lines.append(f"Children: {', '.join(children)}")

    return "\n".join(lines)


def build_task_tools(store: TaskRepo) -> list[Tool]:
    def list_tasks(args: ListTasksArgs) -> str:
        tasks = store.list_tasks(status=args.status)
        if not tasks:
            return "No tasks found for the given filter."
        return "\n---\n".join(format_task(t) for t in tasks)

    def create_task(args: CreateTaskArgs) -> str:
        created = store.create_task(
            type=args.type,
            title=args.title,
            description=args.description,
            status=args.status,
            parent_ids=args.parent_ids,
            child_ids=args.child_ids,
        )
        logger.info("Tool create_task -> %s", created.code)
        return f"Created task:\n{format_task(created)}"

    def update_task(args: UpdateTaskArgs) -> str:
        payload = args.model_dump(exclude_none=True, exclude={"id"})
        updated = store.update_task(args.id, **payload)
        logger.info("Tool update_task id=%s fields=%s", args.id, ",".join(sorted(payload)))
        return f"Updated task {args.id}:\n{format_task(updated)}"

    def delete_task(args: DeleteTaskArgs) -> str:
        store.delete_task(args.id)
        logger.info("Tool delete_task id=%s", args.id)
        return f"Deleted task {args.id}"

    return [
        Tool(
            name="list_tasks",
            description=(
                "List tasks with codes, statuses, types, and relations. "
                "Use it to understand current work items."
            ),
            args_schema=ListTasksArgs,
            handler=list_tasks,
        ),
        Tool(
            name="create_task",
            description=(
                "Create a new task or epic with optional parent/child links. "
                "Always provide a clear title and description."
            ),
            args_schema=CreateTaskArgs,
            handler=create_task,
        ),
        Tool(
            name="update_task",
            description=(
                "Update an existing task fields or relations. Provide task id and only fields "
                "that should change. parentIds/childIds replace the whole list."
            ),
            args_schema=UpdateTaskArgs,
            handler=update_task,
        ),
        Tool(
            name="delete_task",
            description=(
                "Delete a task by id. Use after confirming the task should be removed from the board."
            ),
            args_schema=DeleteTaskArgs,
            handler=delete_task,
        ),
    ]


def register_task_tools(registry: ToolRegistry, store: TaskRepo) -> None:
    for tool in build_task_tools(store):
        registry.register(tool)
