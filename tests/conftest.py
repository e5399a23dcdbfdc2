# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasktalk.core.agent import AgentLoop
from tasktalk.core.state import AppState
from tasktalk.memory.history import HistoryLoader
from tasktalk.memory.turn_store import TurnStore
from tasktalk.memory.vector_store import VectorStore
from tasktalk.tasks.task_store import TaskStore
from tasktalk.tools.registry import ToolRegistry
from tasktalk.tools.task_tools import register_task_tools
from tasktalk.tools.vector_tools import register_vector_tools

from .fakes import FakeEmbedder, ScriptedChatModel, text_reply


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasktalk-test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        messages_db_path=tmp_path / "messages.sqlite3",
        vectors_db_path=tmp_path / "vectors.sqlite3",
        # Limits
        agent_max_steps=4,
        history_max_turns=10,
        task_code_prefix="TASK",
        vector_enabled=True,
        vector_collection="requirements",
    )


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path, code_prefix=settings.task_code_prefix)


@pytest.fixture()
def turn_store(settings: SimpleNamespace) -> TurnStore:
    return TurnStore(settings.messages_db_path)


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def vector_store(settings: SimpleNamespace, embedder: FakeEmbedder) -> VectorStore:
    return VectorStore(settings.vectors_db_path, embedder, collection=settings.vector_collection)


@pytest.fixture()
def registry(task_store: TaskStore, vector_store: VectorStore) -> ToolRegistry:
    reg = ToolRegistry()
    register_task_tools(reg, task_store)
    register_vector_tools(reg, vector_store)
    return reg


@pytest.fixture()
def model() -> ScriptedChatModel:
    return ScriptedChatModel(default=text_reply("ok"))


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    model: ScriptedChatModel,
    task_store: TaskStore,
    turn_store: TurnStore,
    vector_store: VectorStore,
    registry: ToolRegistry,
) -> AppState:
    """
    AppState wired with a scripted model.

    NOTE: We keep real SQLite stores here because their correctness is part of
    what we want to test.
    """
    agent = AgentLoop(
        model,
        registry,
        HistoryLoader(turn_store),
        system_prompt="You are a test agent.",
        max_steps=settings.agent_max_steps,
        history_turns=settings.history_max_turns,
    )
    return AppState(
        settings=settings,
        llm=model,
        task_store=task_store,
        turn_store=turn_store,
        vector_store=vector_store,
        tools=registry,
        agent=agent,
    )
