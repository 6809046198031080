"""Local CLI REPL connector."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from chatmate.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from chatmate.connectors.base import MessageHandler, Reply
    from chatmate.core import Chatmate

logger = logging.getLogger(__name__)

_CLI_CHAT_ID = "cli"
_CLI_SENDER = "user"

HELP_TEXT = """\
Commands:
  /name <name>   save your name
  /tone <tone>   friendly | concise | direct
  /forget        clear everything I remember
  /logs          show the activity log
  /clearlogs     clear the activity log
  /help          show this help
Try: "what time is it", "calc 2*(3+4)", "tell me a joke", "weather in Paris",
"remember that I like tea", "what do you remember"."""


class CLIConnector:
    """Interactive REPL connector — reads from stdin, writes to stdout."""

    def __init__(self, chatmate: Chatmate) -> None:
        self._chatmate = chatmate
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self, handler: MessageHandler) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print("Chatmate: tools + memory + safety (type /help, 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            if text.startswith("/"):
                print(self.run_command(text))
                continue

            msg = IncomingMessage(
                text=text,
                chat_id=_CLI_CHAT_ID,
                sender=_CLI_SENDER,
                connector_name=self.name,
            )

            try:
                reply = await handler(msg)
            except Exception as e:
                logger.error("Error processing CLI message: %s", e)
                continue
            await self.reply(_CLI_CHAT_ID, reply)

    def run_command(self, text: str) -> str:
        """Execute a slash command and return what to print."""
        cmd, _, arg = text.partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()
        memory = self._chatmate.memory

        if cmd == "/name":
            record = self._chatmate.update_settings(arg, memory.load().tone)
            return f"Memory saved: {record.to_json()}"
        if cmd == "/tone":
            current = memory.load()
            try:
                record = self._chatmate.update_settings(current.name, arg)
            except ValueError as e:
                return str(e)
            return f"Memory saved: {record.to_json()}"
        if cmd == "/forget":
            self._chatmate.clear_memory()
            return "Memory cleared."
        if cmd == "/logs":
            entries = self._chatmate.activity.entries()
            return "\n".join(e.format() for e in entries) or "(no log entries)"
        if cmd == "/clearlogs":
            self._chatmate.activity.clear()
            return "Logs cleared."
        if cmd == "/help":
            return HELP_TEXT
        return f"Unknown command {cmd}. Type /help."

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\nYou: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False

    async def reply(self, chat_id: str, reply: Reply) -> None:
        print(f"\nChatmate: {reply.text}")
