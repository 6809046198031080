"""Chatmate orchestrator — the hub between connectors, memory and tools.

Responsibilities:
1. Turn guard — one turn in flight at a time (queue or reject)
2. Intent dispatch — ordered (match, handler) chain, first match wins
3. Tool calls — clock, calculator, joke, weather
4. Memory — remember/recall a note, tone- and name-aware replies
5. Degradation — every tool failure becomes a readable reply
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from chatmate.activity import ActivityLog
from chatmate.config import ChatmateConfig
from chatmate.connectors.base import IncomingMessage, Reply
from chatmate.errors import MissingArgument, ToolError
from chatmate.memory.store import MemoryRecord, MemoryStore, validate_tone
from chatmate.safety import SafetyFilter, SafetyResult
from chatmate.tools.calculator import calculate, format_number
from chatmate.tools.clock import current_time
from chatmate.tools.jokes import pick_joke
from chatmate.tools.weather import WeatherTool

if TYPE_CHECKING:
    from chatmate.connectors.base import Connector

logger = logging.getLogger(__name__)

REMEMBER_RE = re.compile(r"^remember (?:that )?(.*)$", re.IGNORECASE | re.DOTALL)
SHOW_MEMORY_RE = re.compile(r"^(show|what).*(memory|do you remember|what did)", re.IGNORECASE)
TIME_RE = re.compile(r"time|current time|what time", re.IGNORECASE)
TIME_EXCLUDE_RE = re.compile(r"what time of", re.IGNORECASE)
CALC_PREFIX_RE = re.compile(r"^(?:calc|calculate)\s+(.+)$", re.IGNORECASE | re.DOTALL)
CALC_BARE_RE = re.compile(r"^([0-9.\s()+\-*/%]+)\s*$")
JOKE_RE = re.compile(r"joke|make me laugh", re.IGNORECASE)
# Searched, not anchored: "how's the weather in Paris?" works. City: letters,
# spaces, hyphens, apostrophes; optional, so a bare "weather" gets the usage hint.
WEATHER_RE = re.compile(
    r"\bweather(?:\s+in)?"
    r"(?:\s+(?P<city>[^\W\d_](?:[^\W\d_]|[\s'\-])*))?\s*\??$",
    re.IGNORECASE,
)

BUSY_REPLY = "Still working on your previous message, please wait a moment."
CALC_ERROR_REPLY = "Sorry, could not compute that expression safely."
WEATHER_USAGE_REPLY = 'Which city? Try "weather in Paris".'


@dataclass(frozen=True)
class Intent:
    """One entry of the dispatch chain.

    ``match`` returns something truthy (a regex match, a SafetyResult) when
    the intent applies; the handler receives the stripped text and that value.
    """

    name: str
    match: Callable[[str], Any]
    handler: Callable[[str, Any], Awaitable[str]]


class Chatmate:
    """Core orchestrator — classifies each message and produces one reply."""

    def __init__(
        self,
        config: ChatmateConfig,
        memory: MemoryStore | None = None,
        activity: ActivityLog | None = None,
        weather: WeatherTool | None = None,
        safety: SafetyFilter | None = None,
    ) -> None:
        self.config = config
        self.activity = activity or ActivityLog()
        self.memory = memory or MemoryStore(config.memory_dir, activity=self.activity)
        self.weather = weather or WeatherTool(config.weather)
        self.safety = safety or SafetyFilter()
        self._connectors: list[Connector] = []
        # Every turn may write the one memory record, so turns are serialized
        # globally rather than per chat
        self._turn_lock = asyncio.Lock()

        # Order is part of the contract: the bare-expression calculator must
        # come after remember/show/time, and safety always runs first.
        self.intents: list[Intent] = [
            Intent("safety", self._match_blocked, self._handle_blocked),
            Intent("remember", REMEMBER_RE.match, self._handle_remember),
            Intent("show_memory", SHOW_MEMORY_RE.match, self._handle_show_memory),
            Intent("time", self._match_time, self._handle_time),
            Intent("calculate", self._match_calc, self._handle_calc),
            Intent("joke", JOKE_RE.search, self._handle_joke),
            Intent("weather", WEATHER_RE.search, self._handle_weather),
            Intent("fallback", lambda text: True, self._handle_fallback),
        ]

    # ── Connector management ─────────────────────────────────

    def add_connector(self, connector: Connector) -> None:
        self._connectors.append(connector)
        logger.info("Registered connector: %s", connector.name)

    # ── Turn guard (one turn in flight) ──────────────────────

    @property
    def busy(self) -> bool:
        return self._turn_lock.locked()

    async def _guarded_turn(self, text: str) -> tuple[str, str]:
        if self.config.turn_policy == "reject" and self.busy:
            self.activity.record("Turn rejected while busy", text)
            return "busy", BUSY_REPLY

        async with self._turn_lock:
            return await self._dispatch(text)

    async def handle_message(self, msg: IncomingMessage) -> Reply:
        """Process an incoming message — the entry point for all connectors."""
        intent, text = await self._guarded_turn(msg.text)
        return Reply(text=text, intent=intent, metadata={"connector": msg.connector_name})

    # ── Turn processing ──────────────────────────────────────

    async def respond(self, text: str) -> str:
        """Produce the reply for one user message."""
        _, reply = await self._guarded_turn(text)
        return reply

    async def _dispatch(self, text: str) -> tuple[str, str]:
        text = (text or "").strip()
        self.activity.record("User message received", text)

        for intent in self.intents:
            matched = intent.match(text)
            if matched:
                logger.debug("Intent matched: %s", intent.name)
                return intent.name, await intent.handler(text, matched)

        # Unreachable while the fallback intent is last in the chain
        raise RuntimeError("No intent matched")

    # ── Matchers ─────────────────────────────────────────────

    def _match_blocked(self, text: str) -> SafetyResult | None:
        result = self.safety.check(text)
        if result.ok:
            return None
        return result

    @staticmethod
    def _match_time(text: str) -> bool:
        return bool(TIME_RE.search(text)) and not TIME_EXCLUDE_RE.search(text)

    @staticmethod
    def _match_calc(text: str) -> re.Match | None:
        return CALC_PREFIX_RE.match(text) or CALC_BARE_RE.match(text)

    # ── Handlers ─────────────────────────────────────────────

    async def _handle_blocked(self, text: str, result: SafetyResult) -> str:
        self.activity.record("Safety block", result.matched_keyword)
        return result.reason or "Request blocked."

    async def _handle_remember(self, text: str, match: re.Match) -> str:
        note = match.group(1)
        record = self.memory.load()
        record.note = note
        self.memory.save(record)
        return f'Okay, I will remember: "{note}".'

    async def _handle_show_memory(self, text: str, match: re.Match) -> str:
        return "Memory: " + self.memory.load().to_json()

    async def _handle_time(self, text: str, matched: bool) -> str:
        self.activity.record("Tool called: time")
        record = self.memory.load()
        prefix = f"{record.name}, " if record.name else ""
        return f"{prefix}the current time is {current_time()}."

    async def _handle_calc(self, text: str, match: re.Match) -> str:
        expression = match.group(1).strip()
        self.activity.record("Tool called: calc", expression)
        try:
            result = calculate(expression)
        except ToolError as e:
            self.activity.record("Calc error", str(e))
            return CALC_ERROR_REPLY
        return f"Result: {format_number(result)}"

    async def _handle_joke(self, text: str, match: re.Match) -> str:
        self.activity.record("Tool called: joke")
        return pick_joke()

    async def _handle_weather(self, text: str, match: re.Match) -> str:
        city = (match.group("city") or "").strip()
        self.activity.record("Tool called: weather", city)
        try:
            return await self.weather.lookup(city)
        except MissingArgument:
            return WEATHER_USAGE_REPLY
        except Exception as e:
            logger.exception("Weather lookup failed for %r", city)
            self.activity.record("Weather error", str(e))
            return f"Sorry, I couldn't get the weather for {city} right now."

    async def _handle_fallback(self, text: str, matched: bool) -> str:
        record = self.memory.load()
        if record.tone == "concise":
            reply = f'Received: "{text}". Next?'
        elif record.tone == "direct":
            reply = f'You wrote: "{text}". What is your desired action?'
        else:
            greeting = f"Hey {record.name}! " if record.name else ""
            reply = f'{greeting}I heard: "{text}". How can I help further?'

        # Re-read: a note may have changed since the tone was read
        note = self.memory.load().note
        if note:
            reply += f' (Also, you asked me to remember: "{note}".)'
        return reply

    # ── Settings ─────────────────────────────────────────────

    def update_settings(self, name: str, tone: str) -> MemoryRecord:
        """Save name and tone, keeping the remembered note. Raises ValueError on unknown tone."""
        tone = validate_tone(tone)
        record = MemoryRecord(
            name=(name or "").strip(),
            tone=tone,
            note=self.memory.load().note,
        )
        self.memory.save(record)
        return record

    def clear_memory(self) -> None:
        self.memory.clear()

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start all connectors (each listens for messages)."""
        if not self._connectors:
            raise RuntimeError("No connectors registered. Call add_connector() first.")

        tasks = [connector.start(self.handle_message) for connector in self._connectors]
        await asyncio.gather(*tasks)

    async def stop(self) -> None:
        """Gracefully stop all connectors."""
        for connector in self._connectors:
            await connector.stop()
