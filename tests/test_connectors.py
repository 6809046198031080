"""Tests for the CLI and web connectors."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from pathlib import Path
from aiohttp.test_utils import TestClient, TestServer

from chatmate.config import ChatmateConfig, WebConfig
from chatmate.connectors.base import Connector
from chatmate.connectors.cli import CLIConnector
from chatmate.connectors.web import WebConnector
from chatmate.core import BUSY_REPLY, Chatmate
from chatmate.memory.store import MemoryRecord


class SlowWeather:
    """Weather tool that blocks until released, to hold a turn in flight."""

    live = False

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def lookup(self, city: str) -> str:
        self.started.set()
        await self.release.wait()
        return f"sunny in {city}"


@pytest.fixture
def chatmate(tmp_path: Path) -> Chatmate:
    return Chatmate(ChatmateConfig(memory_dir=tmp_path / "memory"))


@pytest_asyncio.fixture
async def client(chatmate: Chatmate):
    connector = WebConnector(WebConfig(), chatmate)
    app = connector.build_app(chatmate.handle_message)
    async with TestClient(TestServer(app)) as c:
        yield c


class TestProtocol:
    def test_connectors_satisfy_protocol(self, chatmate: Chatmate):
        assert isinstance(CLIConnector(chatmate), Connector)
        assert isinstance(WebConnector(WebConfig(), chatmate), Connector)


class TestWebConnector:
    @pytest.mark.asyncio
    async def test_chat(self, client: TestClient):
        resp = await client.post("/api/chat", json={"text": "2+2"})
        assert resp.status == 200
        assert await resp.json() == {"reply": "Result: 4", "intent": "calculate"}

    @pytest.mark.asyncio
    async def test_chat_requires_text(self, client: TestClient):
        resp = await client.post("/api/chat", json={"text": "   "})
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_chat_rejects_non_json(self, client: TestClient):
        resp = await client.post("/api/chat", data="not json")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_chat_rejects_undecodable_body(self, client: TestClient):
        resp = await client.post(
            "/api/chat", data=b"\xff\xfe", headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_chat_id_cannot_bypass_turn_guard(self, tmp_path: Path):
        config = ChatmateConfig(memory_dir=tmp_path / "memory", turn_policy="reject")
        weather = SlowWeather()
        chatmate = Chatmate(config, weather=weather)
        app = WebConnector(config.web, chatmate).build_app(chatmate.handle_message)

        async with TestClient(TestServer(app)) as client:

            async def chat(body: dict) -> dict:
                resp = await client.post("/api/chat", json=body)
                return await resp.json()

            first = asyncio.create_task(chat({"text": "weather in Paris"}))
            await weather.started.wait()

            busy = await chat({"text": "remember overlapped", "chat_id": "x1"})
            assert busy == {"reply": BUSY_REPLY, "intent": "busy"}
            assert not chatmate.memory.exists()

            weather.release.set()
            body = await first
            assert body == {"reply": "sunny in Paris", "intent": "weather"}

    @pytest.mark.asyncio
    async def test_memory_settings_round_trip(self, client: TestClient, chatmate: Chatmate):
        await client.post("/api/chat", json={"text": "remember the keys are in the drawer"})

        resp = await client.put("/api/memory", json={"name": "Ana", "tone": "concise"})
        assert resp.status == 200
        assert await resp.json() == {
            "name": "Ana", "tone": "concise", "note": "the keys are in the drawer",
        }

        resp = await client.get("/api/memory")
        assert await resp.json() == {
            "name": "Ana", "tone": "concise", "note": "the keys are in the drawer",
        }

    @pytest.mark.asyncio
    async def test_memory_bad_tone(self, client: TestClient, chatmate: Chatmate):
        resp = await client.put("/api/memory", json={"name": "Ana", "tone": "grumpy"})
        assert resp.status == 400
        assert not chatmate.memory.exists()

    @pytest.mark.asyncio
    async def test_memory_clear(self, client: TestClient, chatmate: Chatmate):
        chatmate.memory.save(MemoryRecord(name="Ana"))
        resp = await client.delete("/api/memory")
        assert resp.status == 200
        assert chatmate.memory.load() == MemoryRecord()

    @pytest.mark.asyncio
    async def test_logs(self, client: TestClient):
        await client.post("/api/chat", json={"text": "tell me a joke"})
        body = await (await client.get("/api/logs")).json()
        messages = [e["message"] for e in body["entries"]]
        assert "User message received" in messages
        assert "Tool called: joke" in messages

        await client.delete("/api/logs")
        body = await (await client.get("/api/logs")).json()
        assert [e["message"] for e in body["entries"]] == ["Logs cleared"]

    @pytest.mark.asyncio
    async def test_health(self, client: TestClient):
        body = await (await client.get("/health")).json()
        assert body == {"status": "ok", "weather": "simulated"}


class TestCLICommands:
    def test_name_and_tone(self, chatmate: Chatmate):
        cli = CLIConnector(chatmate)
        assert cli.run_command("/name Ana").startswith("Memory saved:")
        cli.run_command("/tone direct")
        assert chatmate.memory.load() == MemoryRecord(name="Ana", tone="direct")

    def test_bad_tone(self, chatmate: Chatmate):
        cli = CLIConnector(chatmate)
        assert "Unknown tone" in cli.run_command("/tone loud")

    def test_forget(self, chatmate: Chatmate):
        cli = CLIConnector(chatmate)
        cli.run_command("/name Ana")
        assert cli.run_command("/forget") == "Memory cleared."
        assert not chatmate.memory.exists()

    def test_logs(self, chatmate: Chatmate):
        cli = CLIConnector(chatmate)
        cli.run_command("/name Ana")
        assert "Saved memory" in cli.run_command("/logs")
        assert cli.run_command("/clearlogs") == "Logs cleared."
        assert cli.run_command("/logs").endswith("Logs cleared")

    def test_unknown(self, chatmate: Chatmate):
        assert "Unknown command" in CLIConnector(chatmate).run_command("/dance")
