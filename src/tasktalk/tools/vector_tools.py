# src/tasktalk/tools/vector_tools.py

"""Optional retrieval tools; registered only when the vector store is enabled."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.ports import VectorRepo
from .registry import Tool, ToolRegistry


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, strict=True)


class AddDocumentArgs(_ToolArgs):
    content: str = Field(min_length=1, description="Text to store for later semantic search")
    metadata: dict[str, Any] | None = Field(default=None, description="Optional JSON metadata")
    id: str | None = Field(default=None, min_length=1, description="Optional document id")


class SearchDocumentsArgs(_ToolArgs):
    query: str = Field(min_length=1)
    limit: int = Field(default=3, ge=1, le=10)


class GetDocumentArgs(_ToolArgs):
    id: str = Field(min_length=1)


class UpdateDocumentArgs(_ToolArgs):
    id: str = Field(min_length=1)
    content: str | None = Field(default=None, min_length=1)
    metadata: dict[str, Any] | None = None


class DeleteDocumentArgs(_ToolArgs):
    id: str = Field(min_length=1)


def _meta(meta: dict[str, Any]) -> str:
    return json.dumps(meta, ensure_ascii=False, sort_keys=True)


def build_vector_tools(store: VectorRepo) -> list[Tool]:
    def add_document(args: AddDocumentArgs) -> str:
        doc_id = store.add_document(args.content, args.metadata, doc_id=args.id)
        if doc_id is None:
            return "Document was not stored (retrieval backend unavailable)."
        return f"Stored document {doc_id}"

    def search_documents(args: SearchDocumentsArgs) -> str:
        results = store.similarity_search(args.query, limit=args.limit)
        if not results:
            return "No matching documents."
        blocks = [
            f"#{i} score={r.score:.3f} metadata={_meta(r.metadata)}\n{r.content}"
            for i, r in enumerate(results, start=1)
        ]
        return "\n---\n".join(blocks)

    def get_document(args: GetDocumentArgs) -> str:
        doc = store.get_document(args.id)
        if doc is None:
            return f"Document {args.id} not found."
        return f"Document {doc.id} metadata={_meta(doc.metadata)}\n{doc.content}"

    def update_document(args: UpdateDocumentArgs) -> str:
        if args.content is None and args.metadata is None:
            return "Nothing to update."
        ok = store.update_document(args.id, content=args.content, metadata=args.metadata)
        return f"Updated document {args.id}" if ok else f"Document {args.id} was not updated."

    def delete_document(args: DeleteDocumentArgs) -> str:
        ok = store.delete_document(args.id)
        return f"Deleted document {args.id}" if ok else f"Document {args.id} not found."

    return [
        Tool(
            name="add_document",
            description="Save a fact or requirement note into the semantic memory for later search.",
            args_schema=AddDocumentArgs,
            handler=add_document,
        ),
        Tool(
            name="search_documents",
            description="Semantic search over saved notes and past conversation turns.",
            args_schema=SearchDocumentsArgs,
            handler=search_documents,
        ),
        Tool(
            name="get_document",
            description="Fetch a saved note by id.",
            args_schema=GetDocumentArgs,
            handler=get_document,
        ),
        Tool(
            name="update_document",
            description="Replace the content and/or metadata of a saved note.",
            args_schema=UpdateDocumentArgs,
            handler=update_document,
        ),
        Tool(
            name="delete_document",
            description="Delete a saved note by id.",
            args_schema=DeleteDocumentArgs,
            handler=delete_document,
        ),
    ]


def register_vector_tools(registry: ToolRegistry, store: VectorRepo) -> None:
    if not store.enabled:
        return
    for tool in build_vector_tools(store):
        registry.register(tool)
