# src/tasktalk/llm/offline.py

from __future__ import annotations

from typing import Any

from ..core.ports import ChatMessage, ModelReply


class OfflineChatModel:
    """
    Offline deterministic chat model used for demos when no external API is configured.

    Never requests tools; replies with a fixed hint plus the last user message.
    """

    model = "offline"

    def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        user_text = ""
        for m in reversed(messages):
            if m.get("role") == "user":
                user_text = str(m.get("content") or "")
                break

        return ModelReply(
            content=(
                "Offline demo mode: no external LLM is configured.\n"
                "Set TASKTALK_LLM_API_KEY (and TASKTALK_LLM_MODEL) to enable real responses.\n\n"
                f"You said: {user_text}"
            )
        )
