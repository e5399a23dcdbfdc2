# src/tasktalk/memory/vector_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from ..core.ports import Embedder

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 10


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    content: str
    metadata: dict[str, Any]


@dataclass(frozen=True, slots=True)
class SearchResult:
    content: str
    metadata: dict[str, Any]
    score: float  # cosine similarity, higher is closer


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of `matrix` against `query`. Zero vectors score 0."""
    q_norm = float(np.linalg.norm(query))
    if matrix.size == 0 or q_norm == 0.0:
        return np.zeros(len(matrix), dtype=np.float32)

    norms = np.linalg.norm(matrix, axis=1)
    norms[norms == 0.0] = 1.0
    scores = np.dot(matrix / norms[:, None], query / q_norm)
    return np.clip(scores, -1.0, 1.0)


def _meta_to_str(meta: dict[str, Any] | None) -> str:
    if not meta:
        return "{}"
    try:
        return json.dumps(meta, ensure_ascii=False, sort_keys=True)
    except Exception:
        logger.exception("Failed to JSON-encode metadata; storing {}.")
        return "{}"


def _str_to_meta(s: str | None) -> dict[str, Any]:
    if not s:
        return {}
    try:
        val = json.loads(s)
        return val if isinstance(val, dict) else {}
    except Exception:
        return {}


class VectorStore:
    """
    Document store with embedding-based similarity search.

    Documents live in one SQLite table per collection; embeddings come from the
    injected Embedder. When no embedder is configured the store is disabled and
    every call is a no-op. Backend failures are logged as warnings and turned into
    empty results, never raised.
    """

    def __init__(
        self,
        db_path: str | Path,
        embedder: Embedder | None,
        *,
        collection: str = "requirements",
    ) -> None:
        self._db_path = Path(db_path)
        self._embedder = embedder
        self._collection = (collection or "requirements").strip()

        if embedder is None:
            logger.warning("Embedder is not configured; vector store disabled")
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("VectorStore ready db=%s collection=%s", self._db_path, self._collection)

    @property
    def enabled(self) -> bool:
        return self._embedder is not None

    def close(self) -> None:
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT NOT NULL,
                    collection TEXT NOT NULL,
                    content TEXT NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    embedding TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _embed_one(self, text: str) -> list[float]:
        assert self._embedder is not None
        vectors = self._embedder.embed([text])
        if len(vectors) != 1:
            raise RuntimeError(f"Embedder returned {len(vectors)} vectors for 1 input")
        return [float(x) for x in vectors[0]]

    # ---- public API ----

    def add_document(
        self,
        content: str,
        metadata: dict[str, Any] | None = None,
        doc_id: str | None = None,
    ) -> str | None:
        """Insert or replace a document. Returns its id, or None when nothing was stored."""
        if not self.enabled:
            return None
        text = (content or "").strip()
        if not text:
            return None

        doc_id = (doc_id or "").strip() or uuid.uuid4().hex
        try:
            vector = self._embed_one(text)
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO documents(id, collection, content, metadata, embedding, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (doc_id, self._collection, text, _meta_to_str(metadata), json.dumps(vector), time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except Exception as e:
            logger.warning("Could not add document to vector store: %s", e)
            return None

        logger.debug("Vector document stored id=%s", doc_id)
        return doc_id

    def similarity_search(self, query: str, limit: int = 3) -> list[SearchResult]:
        if not self.enabled:
            return []
        text = (query or "").strip()
        if not text:
            return []

        k = min(max(int(limit), 1), MAX_SEARCH_LIMIT)
        try:
            qvec = np.asarray(self._embed_one(text), dtype=np.float32)
            conn = self._get_conn()
            try:
                rows = conn.execute(
                    "SELECT content, metadata, embedding FROM documents WHERE collection = ?",
                    (self._collection,),
                ).fetchall()
            finally:
                conn.close()

            kept: list[sqlite3.Row] = []
            vectors: list[list[float]] = []
            for r in rows:
                vec = json.loads(r["embedding"])
                # rows embedded by another model cannot be compared
                if len(vec) != qvec.shape[0]:
                    continue
                kept.append(r)
                vectors.append(vec)
            if not kept:
                return []

            scores = cosine_scores(qvec, np.array(vectors, dtype=np.float32))
        except Exception as e:
            logger.warning("Vector similarity search failed: %s", e)
            return []

        if len(kept) < len(rows):
            logger.debug("Skipped %d documents with mismatched embedding size", len(rows) - len(kept))

        top = np.argsort(-scores, kind="stable")[:k]
        return [
            SearchResult(
                content=str(kept[i]["content"]),
                metadata=_str_to_meta(kept[i]["metadata"]),
                score=float(scores[i]),
            )
            for i in top
        ]

    def get_document(self, doc_id: str) -> Document | None:
        if not self.enabled or not doc_id:
            return None
        try:
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT id, content, metadata FROM documents WHERE collection = ? AND id = ?",
                    (self._collection, doc_id),
                ).fetchone()
            finally:
                conn.close()
        except Exception as e:
            logger.warning("Vector get failed id=%s: %s", doc_id, e)
            return None

        if row is None:
            return None
        return Document(id=str(row["id"]), content=str(row["content"]), metadata=_str_to_meta(row["metadata"]))

    def update_document(
        self,
        doc_id: str,
        *,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Update content (re-embedded) and/or replace metadata. False when nothing changed."""
        if not self.enabled or not doc_id:
            return False
        if content is None and metadata is None:
            return False

        current = self.get_document(doc_id)
        if current is None:
            return False

        new_content = current.content if content is None else content.strip()
        if not new_content:
            return False
        new_meta = current.metadata if metadata is None else metadata

        try:
            vector = self._embed_one(new_content) if content is not None else None
            conn = self._get_conn()
            try:
                if vector is None:
                    conn.execute(
                        "UPDATE documents SET metadata = ?, updated_at = ? WHERE collection = ? AND id = ?",
                        (_meta_to_str(new_meta), time.time(), self._collection, doc_id),
                    )
                else:
                    conn.execute(
                        """
                        UPDATE documents
                        SET content = ?, metadata = ?, embedding = ?, updated_at = ?
                        WHERE collection = ? AND id = ?
                        """,
                        (
                            new_content,
                            _meta_to_str(new_meta),
                            json.dumps(vector),
                            time.time(),
                            self._collection,
                            doc_id,
                        ),
                    )
                conn.commit()
            finally:
                conn.close()
        except Exception as e:
            logger.warning("Vector update failed id=%s: %s", doc_id, e)
            return False
        return True

    def delete_document(self, doc_id: str) -> bool:
        if not self.enabled or not doc_id:
            return False
        try:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (self._collection, doc_id),
                )
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()
        except Exception as e:
            logger.warning("Vector delete failed id=%s: %s", doc_id, e)
            return False

    def index_turn(self, turn: Any) -> int:
        """
        Index a conversation turn as two documents (user text + assistant reply).

        Returns the number of documents stored.
        """
        if not self.enabled:
            return 0

        turn_id = getattr(turn, "id", None)
        created = getattr(turn, "created_at_iso", None)
        stored = 0
        for role, text in (
            ("user", getattr(turn, "user_text", "")),
            ("assistant", getattr(turn, "assistant_reply", "")),
        ):
            if not (text or "").strip():
                continue
            doc_id = f"turn-{turn_id}-{role}" if turn_id is not None else None
            meta = {"turn_id": turn_id, "role": role, "created_at": created}
            if self.add_document(text, meta, doc_id=doc_id):
                stored += 1
        return stored
