# src/tasktalk/tools/registry.py

"""
Tool registration, lookup and invocation.

A tool is a name + description (read by the model to decide when to call it),
a pydantic input schema and a handler returning a plain string. Arguments are
validated before the handler runs.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ..errors import AppError, ToolExecutionError, ToolInputError, ToolNotFoundError

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], str]


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler

    def openai_spec(self) -> dict[str, Any]:
        """OpenAI function-calling declaration."""
        params = self.args_schema.model_json_schema(by_alias=True)
        params.pop("title", None)
        params.pop("description", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": params,
            },
        }


def _format_schema_errors(err: SchemaValidationError) -> str:
    parts: list[str] = []
    for e in err.errors():
        loc = ".".join(str(x) for x in e.get("loc", ())) or "(root)"
        parts.append(f"{loc}: {e.get('msg', 'invalid')}")
    return "; ".join(parts)


class ToolRegistry:
    """Name -> Tool mapping, resolved once at startup and shared by all turns."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def openai_tools(self) -> list[dict[str, Any]]:
        return [t.openai_spec() for t in self._tools.values()]

    def parse_arguments(self, tool: Tool, arguments: str | Mapping[str, Any] | None) -> BaseModel:
        """Decode (if needed) and validate raw tool arguments. Raises ToolInputError."""
        data: Any
        if arguments is None:
            data = {}
        elif isinstance(arguments, str):
            raw = arguments.strip()
            if not raw:
                data = {}
            else:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ToolInputError(tool.name, f"Arguments are not valid JSON: {e.msg}") from e
        else:
            data = dict(arguments)

        if not isinstance(data, dict):
            raise ToolInputError(tool.name, "Arguments must be a JSON object")

        try:
            return tool.args_schema.model_validate(data)
        except SchemaValidationError as e:
            raise ToolInputError(
                tool.name, f"Invalid arguments for {tool.name}: {_format_schema_errors(e)}"
            ) from e

    def invoke(self, name: str, arguments: str | Mapping[str, Any] | None = None) -> str:
        """
        Validate arguments and run the tool.

        Raises:
        - ToolNotFoundError: unknown name
        - ToolInputError: malformed JSON or schema mismatch (handler not called)
        - ToolExecutionError: the handler raised
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        args = self.parse_arguments(tool, arguments)

        try:
            out = tool.handler(args)
        except AppError as e:
            raise ToolExecutionError(name, str(e)) from e
        except Exception as e:
            logger.exception("Tool handler crashed: %s", name)
            raise ToolExecutionError(name, f"{e.__class__.__name__}: {e}") from e

        return out if isinstance(out, str) else str(out)
