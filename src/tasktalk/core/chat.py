# src/tasktalk/core/chat.py

"""
Conversation entry point.

Transport-agnostic: connectors pass in user text and get back the reply text.

Key invariants:
- a turn is persisted only after the agent loop produced a reply,
- a fatal model/provider error propagates and nothing is persisted
  (never turned into an empty or misleading "success" reply),
- indexing the turn for semantic retrieval is best-effort.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..errors import ValidationError
from .state import AppState

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100
DEFAULT_LIST_LIMIT = 20


def handle_user_message(
    state: AppState,
    text: str,
    *,
    cancel_event: threading.Event | None = None,
) -> str:
    """Run one conversational turn and return the assistant reply."""
    user_text = text or ""
    if not user_text.strip():
        raise ValidationError("Message text is required")

    logger.info("Turn started: %s", user_text[:80])
    result = state.agent.run(user_text, cancel_event=cancel_event)

    turn = state.turn_store.append_turn(user_text, result.reply)
    logger.info(
        "Turn saved id=%s steps=%d tool_calls=%d exhausted=%s",
        getattr(turn, "id", "?"),
        result.steps,
        len(result.tool_calls),
        result.exhausted,
    )

    indexed = state.vector_store.index_turn(turn)
    if indexed:
        logger.debug("Turn indexed id=%s docs=%d", getattr(turn, "id", "?"), indexed)

    return result.reply


def list_messages(state: AppState, limit: Any = DEFAULT_LIST_LIMIT) -> list[Any]:
    """Recent turns, newest first. Invalid or non-positive limits fall back to 20; at most 100."""
    try:
        n = int(limit)
    except (TypeError, ValueError):
        n = DEFAULT_LIST_LIMIT
    if n <= 0:
        n = DEFAULT_LIST_LIMIT
    return state.turn_store.recent_turns(min(n, MAX_LIST_LIMIT))


def clear_history(state: AppState) -> int:
    removed = state.turn_store.clear_turns()
    logger.info("Conversation history cleared removed=%d", removed)
    return removed
