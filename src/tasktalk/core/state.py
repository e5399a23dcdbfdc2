# src/tasktalk/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tools.registry import ToolRegistry
from .agent import AgentLoop
from .ports import ChatModel, TaskRepo, TurnRepo, VectorRepo


@dataclass
class AppState:
    """
    Process-wide application state.

    Built once by the composition root (cli.bootstrap) and passed by reference
    into every turn; nothing here is recreated per call.
    """

    settings: Any
    llm: ChatModel
    task_store: TaskRepo
    turn_store: TurnRepo
    vector_store: VectorRepo
    tools: ToolRegistry
    agent: AgentLoop
