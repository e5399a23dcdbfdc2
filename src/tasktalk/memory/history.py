# src/tasktalk/memory/history.py

"""
Short-term conversational memory.

Recent turns are replayed to the model as alternating user/assistant messages.
Losing history is recoverable, aborting a reply is not: `load` never raises.
"""

from __future__ import annotations

import logging

from ..core.ports import ChatMessage, TurnRepo
from ..errors import HistoryLoadError

logger = logging.getLogger(__name__)

HistoryPair = tuple[str, str]


class HistoryLoader:
    def __init__(self, turns: TurnRepo) -> None:
        self._turns = turns

    def fetch(self, max_turns: int) -> list[HistoryPair]:
        """(user, assistant) pairs, oldest first. Raises HistoryLoadError."""
        if max_turns <= 0:
            return []
        # repositories may hand back lazy cursors; rows are read inside the guard too
        try:
            recent = list(self._turns.recent_turns(max_turns))
            return [(t.user_text, t.assistant_reply) for t in reversed(recent)]
        except Exception as e:
            raise HistoryLoadError(f"Could not read conversation history: {e}") from e

    def load(self, max_turns: int) -> list[HistoryPair]:
        try:
            pairs = self.fetch(max_turns)
        except HistoryLoadError as e:
            logger.warning("%s (continuing without history)", e)
            return []

        logger.debug("History loaded turns=%d (max=%d)", len(pairs), max_turns)
        return pairs

    @staticmethod
    def to_messages(pairs: list[HistoryPair]) -> list[ChatMessage]:
        out: list[ChatMessage] = []
        for user_text, assistant_reply in pairs:
            out.append({"role": "user", "content": user_text})
            out.append({"role": "assistant", "content": assistant_reply})
        return out
