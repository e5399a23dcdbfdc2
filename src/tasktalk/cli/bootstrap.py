# src/tasktalk/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (LLM/stores/tools/agent loop).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.agent import AgentLoop
from ..core.ports import ChatModel, Embedder
from ..core.state import AppState
from ..llm.client import OpenAIChatModel, build_openai_client
from ..llm.embeddings import OpenAIEmbedder
from ..llm.offline import OfflineChatModel
from ..memory.history import HistoryLoader
from ..memory.turn_store import TurnStore
from ..memory.vector_store import VectorStore
from ..tasks.task_store import TaskStore
from ..tools.registry import ToolRegistry
from ..tools.task_tools import register_task_tools
from ..tools.vector_tools import register_vector_tools

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.messages_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.vectors_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_embedder(settings) -> Embedder | None:
    if not settings.vector_enabled:
        logger.info("Vector store disabled by settings.")
        return None
    try:
        return OpenAIEmbedder(settings, client=build_openai_client(settings))
    except Exception as e:
        logger.warning("Embeddings are not available (%s); vector store disabled.", e)
        return None


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm: ChatModel
    try:
        llm = OpenAIChatModel(settings)
    except Exception as e:
        # Fallback for demos / local runs without external services.
        logger.warning("LLM client is not available (%s); using offline model.", e)
        llm = OfflineChatModel()

    task_store = TaskStore(settings.tasks_db_path, code_prefix=settings.task_code_prefix)
    turn_store = TurnStore(settings.messages_db_path)
    vector_store = VectorStore(
        settings.vectors_db_path,
        _build_embedder(settings),
        collection=settings.vector_collection,
    )

    tools = ToolRegistry()
    register_task_tools(tools, task_store)
    register_vector_tools(tools, vector_store)

    agent = AgentLoop(
        llm,
        tools,
        HistoryLoader(turn_store),
        max_steps=settings.agent_max_steps,
        history_turns=settings.history_max_turns,
    )
    logger.info(
        "State ready: model=%s tools=%s max_steps=%d",
        getattr(llm, "model", "?"),
        ", ".join(tools.names()),
        settings.agent_max_steps,
    )

    return AppState(
        settings=settings,
        llm=llm,
        task_store=task_store,
        turn_store=turn_store,
        vector_store=vector_store,
        tools=tools,
        agent=agent,
    )
