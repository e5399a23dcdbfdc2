# src/tasktalk/errors.py

"""
Error taxonomy shared by the store, the tool layer and the agent loop.

Propagation:
- ValidationError / NotFoundError are client errors (user-correctable).
- Tool* errors never leave the agent loop; they become tool-result strings.
- ProviderError aborts the current turn and reaches the caller.
- HistoryLoadError is logged and replaced by an empty history.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all tasktalk errors."""


class ValidationError(AppError):
    """Bad input shape, enum value or empty required field."""


class NotFoundError(AppError):
    """A referenced entity does not exist."""


class ToolError(AppError):
    """Base class for errors raised while dispatching a tool call."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool {tool_name} is not available")


class ToolInputError(ToolError):
    """Tool arguments do not match the declared input schema."""


class ToolExecutionError(ToolError):
    """The tool handler raised."""


class ProviderError(AppError):
    """
    Model or embedding backend failed (auth, network, timeout, rate limit, ...).

    `friendly` is a short user-facing explanation; str(err) keeps the technical detail.
    """

    def __init__(self, message: str, *, friendly: str | None = None) -> None:
        super().__init__(message)
        self.friendly = friendly or message


class HistoryLoadError(AppError):
    """Conversation history could not be read."""


class TurnCancelledError(AppError):
    """The turn was cancelled before the agent loop finished."""
