"""Connector protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Coroutine, Protocol, runtime_checkable


@dataclass
class IncomingMessage:
    """A message received from any connector."""

    text: str
    chat_id: str
    sender: str = ""
    connector_name: str = ""
    metadata: dict = field(default_factory=dict)


@dataclass
class Reply:
    """One assistant turn, as handed back to a connector."""

    text: str
    intent: str = ""
    metadata: dict = field(default_factory=dict)


# Callback type: core.Chatmate.handle_message
MessageHandler = Callable[[IncomingMessage], Coroutine[None, None, Reply]]


@runtime_checkable
class Connector(Protocol):
    """Protocol that all presentation connectors must implement."""

    @property
    def name(self) -> str: ...

    async def start(self, handler: MessageHandler) -> None:
        """Start listening for messages. Call handler for each incoming message."""
        ...

    async def stop(self) -> None:
        """Gracefully stop the connector."""
        ...

    async def reply(self, chat_id: str, reply: Reply) -> None:
        """Send a reply back to the given chat."""
        ...
