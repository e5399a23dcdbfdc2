# src/tasktalk/llm/embeddings.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from openai import OpenAI

from .client import build_openai_client, provider_error_from

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embeddings through the same OpenAI-compatible endpoint as chat."""

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._model = str(getattr(settings, "embedding_model", "") or "text-embedding-3-small")
        self._client = client if client is not None else build_openai_client(settings)

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = self._client.embeddings.create(model=self._model, input=list(texts))
        except Exception as e:
            raise provider_error_from(e, model=self._model) from e

        data = sorted(response.data, key=lambda d: d.index)
        logger.debug("Embedded %d text(s) with model=%s", len(data), self._model)
        return [list(d.embedding) for d in data]
