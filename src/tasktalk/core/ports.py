# src/tasktalk/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers swappable and makes testing easier.
"""

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

ChatMessage = dict[str, Any]
# OpenAI-style chat messages: {"role": "...", "content": "...", ...}.
# Assistant messages may carry "tool_calls"; tool messages carry "tool_call_id".


@dataclass(frozen=True, slots=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    `arguments` is kept as the provider sent it (usually a JSON string);
    the tool registry parses and validates it.
    """

    id: str
    name: str
    arguments: str | dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        args = self.arguments
        if not isinstance(args, str):
            args = json.dumps(args, ensure_ascii=False, sort_keys=True)
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": args},
        }


@dataclass(frozen=True, slots=True)
class ModelReply:
    content: Any = None
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)

    def to_message(self) -> ChatMessage:
        msg: ChatMessage = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        return msg


class ChatModel(Protocol):
    """Chat completion with optional tool declarations (OpenAI-compatible)."""

    def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply: ...


class Embedder(Protocol):
    def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


class TurnRepo(Protocol):
    def append_turn(self, user_text: str, assistant_reply: str) -> Any: ...
    def recent_turns(self, limit: int = 10) -> list[Any]: ...
    def clear_turns(self) -> int: ...


class TaskRepo(Protocol):
    def create_task(
        self,
        *,
        type: str,
        title: str,
        description: str,
        status: str | None = None,
        parent_ids: Iterable[Any] | None = None,
        child_ids: Iterable[Any] | None = None,
    ) -> Any: ...

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
    ) -> Any: ...

    def set_relations(
        self,
        task_id: int,
        *,
        parent_ids: Iterable[Any] | None = None,
        child_ids: Iterable[Any] | None = None,
    ) -> None: ...

    def get_task(self, task_id: int) -> Any: ...
    def list_tasks(self, status: str | None = None) -> list[Any]: ...
    def delete_task(self, task_id: int) -> None: ...


class VectorRepo(Protocol):
    """
    Semantic retrieval capability.

    Every method degrades to a no-op / empty result when the backend is
    disabled or unreachable; none of them raise.
    """

    @property
    def enabled(self) -> bool: ...

    def add_document(
        self,
        content: str,
        metadata: dict[str, Any] | None = None,
        doc_id: str | None = None,
    ) -> str | None: ...

    def similarity_search(self, query: str, limit: int = 3) -> list[Any]: ...
    def get_document(self, doc_id: str) -> Any | None: ...

    def update_document(
        self,
        doc_id: str,
        *,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool: ...

    def delete_document(self, doc_id: str) -> bool: ...
    def index_turn(self, turn: Any) -> int: ...
