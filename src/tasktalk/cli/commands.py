# src/tasktalk/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.chat import clear_history, list_messages
from ..core.state import AppState
from ..errors import NotFoundError, ValidationError
from ..tasks.task_models import TaskStatus
from ..tools.task_tools import format_task

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except (ValidationError, NotFoundError) as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    retrieval = "ON" if state.vector_store.enabled else "OFF"
    return (
        "Status:\n"
        f"  Model: {getattr(state.llm, 'model', '?')}\n"
        f"  Max agent steps: {getattr(settings, 'agent_max_steps', '?')}\n"
        f"  History turns: {getattr(settings, 'history_max_turns', '?')}\n"
        f"  Tasks: {state.task_store.count_tasks()}\n"
        f"  Retrieval: {retrieval}\n"
        f"  Tools: {', '.join(state.tools.names())}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks          -> all tasks, newest first
    /tasks <status> -> only tasks with that status
    """
    status = TaskStatus.parse(args[0]) if args else None
    tasks = state.task_store.list_tasks(status)
    if not tasks:
        return "No tasks found." if status is None else f"No tasks with status {status}."
    lines = [f"Tasks ({len(tasks)}):"]
    for t in tasks:
        lines.append(f"  #{t.id} {t.code} [{t.type}] ({t.status}) {t.title}")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /task <id|code>"
    ref = args[0]
    task = state.task_store.get_task(int(ref)) if ref.isdigit() else state.task_store.get_task_by_code(ref)
    return f"#{task.id} {format_task(task)}"


def cmd_history(state: AppState, args: list[str]) -> str:
    limit = args[0] if args else 10
    turns = list_messages(state, limit)
    if not turns:
        return "Conversation history is empty."
    lines = [f"Last {len(turns)} turn(s), oldest first:"]
    for turn in reversed(turns):
        lines.append(f"[{turn.created_at_iso}] You: {turn.user_text}")
        lines.append(f"[{turn.created_at_iso}] Agent: {turn.assistant_reply}")
    return "\n".join(lines)


def cmd_clear_history(state: AppState, args: list[str]) -> str:
    removed = clear_history(state)
    return f"Removed {removed} turn(s)."


def cmd_search(state: AppState, args: list[str]) -> str:
    if not state.vector_store.enabled:
        return "Retrieval is disabled (no embeddings configured)."
    query = " ".join(args).strip()
    if not query:
        return "Usage: /search <query>"
    results = state.vector_store.similarity_search(query, limit=5)
    if not results:
        return "No matching documents."
    lines = [f"Results for: {query}"]
    for i, r in enumerate(results, start=1):
        lines.append(f"{i}. ({r.score:.3f}) {r.content}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show model, limits and store totals.")
registry.register(
    "tasks", cmd_tasks, help_text="List tasks: /tasks [open|in_progress|requires_clarification|ready|done]."
)
registry.register("task", cmd_task, help_text="Show one task: /task <id|code>.")
registry.register("history", cmd_history, help_text="Show recent turns: /history [n].")
registry.register("clear-history", cmd_clear_history, help_text="Delete all stored turns.")
registry.register("search", cmd_search, help_text="Semantic search in saved notes: /search <query>.")
