"""Chatmate exceptions.

Every failure here is degraded to a user-visible string somewhere up the
stack; none of them should reach a connector.
"""

from __future__ import annotations

from pathlib import Path


class ChatmateError(Exception):
    """Base Chatmate error."""


class ToolError(ChatmateError):
    """A tool could not produce a result."""


class InvalidExpression(ToolError):
    """Calculator input contains characters outside the arithmetic set."""


class EvaluationError(ToolError):
    """Calculator input is malformed or has no finite value."""


class MissingArgument(ToolError):
    """A required tool argument was empty."""

    def __init__(self, argument: str) -> None:
        super().__init__(f"Missing required argument: {argument}")
        self.argument = argument


class ProviderError(ToolError):
    """Weather provider returned a non-success status or could not be reached."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class StorageCorrupt(ChatmateError):
    """The persisted memory record could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Corrupt memory record at {path}: {reason}")
        self.path = path
        self.reason = reason
