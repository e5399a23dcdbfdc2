# src/tasktalk/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage, ModelReply, ToolCall
from ..errors import ProviderError

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {
        "APITimeoutError",
        "Timeout",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
    }


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible SDK uses NotFoundError for HTTP 404 (unknown model).
    return isinstance(exc, openai.NotFoundError)


def provider_error_from(exc: Exception, *, model: str) -> ProviderError:
    """Map an SDK/transport exception to ProviderError with a user-facing message."""
    if _is_auth_error(exc):
        return ProviderError(
            f"LLM authentication failed on model={model}: {exc}",
            friendly="LLM authentication failed. Check your API key (TASKTALK_LLM_API_KEY).",
        )
    if _is_rate_limit_error(exc):
        return ProviderError(
            f"LLM rate-limited on model={model}: {exc}",
            friendly="LLM is rate-limited. Try again later.",
        )
    if _is_connection_error(exc):
        return ProviderError(
            f"LLM network/timeout error on model={model}: {exc}",
            friendly="LLM network/timeout error. Try again later.",
        )
    if _is_not_found_error(exc):
        return ProviderError(
            f"LLM model not available: {model}",
            friendly=f"Model {model} is not available. Set TASKTALK_LLM_MODEL.",
        )
    return ProviderError(
        f"LLM request failed on model={model}: {exc.__class__.__name__}: {exc}",
        friendly="LLM request failed.",
    )


def friendly_llm_error_message(err: Exception) -> str:
    if isinstance(err, ProviderError):
        return err.friendly
    return str(err).strip() or "LLM error."


def build_openai_client(settings: Any) -> OpenAI:
    """
    Create the OpenAI-compatible client.

    IMPORTANT:
    - No secrets required at import time; this is called from the composition root.
    - Automatic retries are disabled: a failed model call fails the turn and the
      caller decides whether to retry the whole turn.
    """
    api_key = getattr(settings, "llm_api_key", None)
    if not api_key or not str(api_key).strip():
        raise ProviderError(
            "LLM API key is not set.",
            friendly="LLM is not configured (missing API key). Set TASKTALK_LLM_API_KEY in .env.",
        )

    connect_s = float(getattr(settings, "llm_connect_timeout", 5.0))
    read_s = float(getattr(settings, "llm_read_timeout", 60.0))
    timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)

    base_url = getattr(settings, "llm_base_url", None) or None
    return OpenAI(
        api_key=str(api_key),
        base_url=str(base_url) if base_url else None,
        timeout=timeout,
        max_retries=0,
    )


class OpenAIChatModel:
    """
    Chat completion client with tool calling (OpenAI / OpenRouter compatible).

    One instance per process; it is shared by all turns.
    """

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._model = str(getattr(settings, "llm_model", "") or "").strip()
        if not self._model:
            raise ProviderError(
                "LLM model is not set.",
                friendly="LLM is not configured (no model). Set TASKTALK_LLM_MODEL in .env.",
            )
        self._temperature = float(getattr(settings, "llm_temperature", 0.2))
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._client = client if client is not None else build_openai_client(settings)

    @property
    def model(self) -> str:
        return self._model

    def complete(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if tools:
            kwargs["tools"] = tools
        if self._headers:
            kwargs["extra_headers"] = self._headers

        t0 = time.monotonic()
        try:
            response = self._client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.info("LLM: call failed model=%s (%s)", self._model, e.__class__.__name__)
            raise provider_error_from(e, model=self._model) from e

        if not response.choices:
            raise ProviderError(
                f"Model returned no choices: {self._model}",
                friendly="LLM returned an empty response.",
            )

        message = response.choices[0].message
        tool_calls = tuple(
            ToolCall(
                id=tc.id or "tool-call",
                name=tc.function.name,
                arguments=tc.function.arguments or "{}",
            )
            for tc in (message.tool_calls or [])
            if getattr(tc, "function", None) is not None
        )

        logger.info(
            "LLM: model=%s finish=%s tool_calls=%d (%.2fs)",
            self._model,
            response.choices[0].finish_reason,
            len(tool_calls),
            time.monotonic() - t0,
        )
        return ModelReply(content=message.content, tool_calls=tool_calls)
