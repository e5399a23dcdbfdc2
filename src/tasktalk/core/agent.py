# src/tasktalk/core/agent.py

"""
Bounded tool-calling agent loop.

One user message becomes zero or more tool invocations and one text reply:

    AwaitingModel -> (ToolCallsRequested -> ToolsExecuting -> AwaitingModel)*
                  -> Reply | Exhausted

Key invariants:
- the model is called at most `max_steps` times per turn,
- tool calls of one step run sequentially in the order the model requested them
  (later calls may depend on earlier side effects),
- tool failures (unknown name, bad arguments, handler errors) become tool-result
  strings and never abort the loop,
- model/provider failures are not retried here; they propagate to the caller.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from ..errors import AppError, ProviderError, ToolError, ToolNotFoundError, TurnCancelledError
from ..memory.history import HistoryLoader
from ..tools.registry import ToolRegistry
from .persona import get_system_prompt
from .ports import ChatMessage, ChatModel, ToolCall

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Could not complete the request with available tools."
DEFAULT_TOOL_CALL_ID = "tool-call"


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    call_id: str
    name: str
    ok: bool
    output: str


@dataclass(slots=True)
class AgentResult:
    reply: str
    steps: int
    exhausted: bool = False
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)


def content_to_text(content: Any) -> str:
    """Final reply text; structured content is serialized deterministically."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, sort_keys=True, default=str)


class AgentLoop:
    """
    Drives the model <-> tools exchange for a single turn.

    The model client, registry and history loader are process-wide objects; an
    AgentLoop holds references to them and keeps no per-turn state.
    """

    def __init__(
        self,
        model: ChatModel,
        registry: ToolRegistry,
        history: HistoryLoader | None = None,
        *,
        system_prompt: str | None = None,
        max_steps: int = 6,
        history_turns: int = 10,
    ) -> None:
        if isinstance(max_steps, bool) or not isinstance(max_steps, int) or max_steps < 1:
            raise ValueError(f"max_steps must be a positive integer, got {max_steps!r}")
        self._model = model
        self._registry = registry
        self._history = history
        self._system_prompt = system_prompt
        self._max_steps = max_steps
        self._history_turns = max(0, int(history_turns))

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def build_messages(self, user_text: str) -> list[ChatMessage]:
        """System instruction + recent history + the new user message."""
        system_prompt = self._system_prompt if self._system_prompt is not None else get_system_prompt()
        messages: list[ChatMessage] = [{"role": "system", "content": system_prompt}]

        if self._history is not None and self._history_turns > 0:
            pairs = self._history.load(self._history_turns)
            messages.extend(HistoryLoader.to_messages(pairs))

        messages.append({"role": "user", "content": user_text})
        return messages

    @staticmethod
    def _check_cancel(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise TurnCancelledError("Turn cancelled")

    def _call_model(self, messages: list[ChatMessage], tools: list[dict[str, Any]] | None) -> Any:
        try:
            return self._model.complete(messages, tools)
        except AppError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Chat model failed: {e.__class__.__name__}: {e}",
                friendly="LLM request failed.",
            ) from e

    def _execute(self, call: ToolCall) -> ToolCallRecord:
        call_id = call.id or DEFAULT_TOOL_CALL_ID
        try:
            output = self._registry.invoke(call.name, call.arguments)
        except ToolError as e:
            text = str(e) if isinstance(e, ToolNotFoundError) else f"Tool error: {e}"
            logger.info("Tool call failed id=%s name=%s: %s", call_id, call.name, e)
            return ToolCallRecord(call_id=call_id, name=call.name, ok=False, output=text)
        except Exception as e:
            logger.exception("Unexpected tool failure id=%s name=%s", call_id, call.name)
            return ToolCallRecord(call_id=call_id, name=call.name, ok=False, output=f"Tool error: {e}")

        logger.debug("Tool call ok id=%s name=%s", call_id, call.name)
        return ToolCallRecord(call_id=call_id, name=call.name, ok=True, output=output)

    def run(self, user_text: str, *, cancel_event: threading.Event | None = None) -> AgentResult:
        messages = self.build_messages(user_text)
        tools = self._registry.openai_tools() or None
        records: list[ToolCallRecord] = []

        for step in range(1, self._max_steps + 1):
            self._check_cancel(cancel_event)

            reply = self._call_model(messages, tools)
            messages.append(reply.to_message())

            if not reply.tool_calls:
                text = content_to_text(reply.content)
                logger.info("Agent finished steps=%d tool_calls=%d", step, len(records))
                return AgentResult(reply=text, steps=step, tool_calls=records, messages=messages)

            logger.info(
                "Agent step=%d requested tools: %s",
                step,
                ", ".join(tc.name for tc in reply.tool_calls),
            )
            for call in reply.tool_calls:
                self._check_cancel(cancel_event)
                record = self._execute(call)
                records.append(record)
                messages.append(
                    {"role": "tool", "tool_call_id": record.call_id, "content": record.output}
                )

        logger.warning(
            "Agent step budget exhausted (max_steps=%d, tool_calls=%d)", self._max_steps, len(records)
        )
        return AgentResult(
            reply=FALLBACK_REPLY,
            steps=self._max_steps,
            exhausted=True,
            tool_calls=records,
            messages=messages,
        )
