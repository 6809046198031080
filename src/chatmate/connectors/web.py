"""HTTP JSON connector on aiohttp.

Routes:
    POST   /api/chat     {"text": ...}           → {"reply": ..., "intent": ...}
    GET    /api/memory                            → stored record
    PUT    /api/memory   {"name": ..., "tone": ...}
    DELETE /api/memory                            → clear the record
    GET    /api/logs                              → activity log entries
    DELETE /api/logs                              → clear the activity log
    GET    /health
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from chatmate.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from chatmate.config import WebConfig
    from chatmate.connectors.base import MessageHandler, Reply
    from chatmate.core import Chatmate

logger = logging.getLogger(__name__)

_WEB_CHAT_ID = "web"


class WebConnector:
    """Browser-facing JSON API."""

    def __init__(self, config: WebConfig, chatmate: Chatmate) -> None:
        self._config = config
        self._chatmate = chatmate
        self._handler: MessageHandler | None = None
        self._runner: web.AppRunner | None = None

    @property
    def name(self) -> str:
        return "web"

    def build_app(self, handler: MessageHandler) -> web.Application:
        self._handler = handler
        app = web.Application()
        app.router.add_post("/api/chat", self._handle_chat)
        app.router.add_get("/api/memory", self._get_memory)
        app.router.add_put("/api/memory", self._put_memory)
        app.router.add_delete("/api/memory", self._delete_memory)
        app.router.add_get("/api/logs", self._get_logs)
        app.router.add_delete("/api/logs", self._delete_logs)
        app.router.add_get("/health", self._health)
        return app

    async def start(self, handler: MessageHandler) -> None:
        app = self.build_app(handler)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()
        logger.info("Web connector listening on %s:%d", self._config.host, self._config.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Web connector stopped")

    async def reply(self, chat_id: str, reply: Reply) -> None:
        # Replies travel back in the HTTP response of /api/chat
        logger.debug("Reply for %s: %s", chat_id, reply.text)

    # ── Handlers ─────────────────────────────────────────────

    @staticmethod
    async def _read_json(request: web.Request) -> dict:
        try:
            body = await request.json()
        except ValueError:
            # Covers both malformed JSON and bodies that are not UTF-8
            raise web.HTTPBadRequest(text="Request body must be JSON")
        if not isinstance(body, dict):
            raise web.HTTPBadRequest(text="Request body must be a JSON object")
        return body

    async def _handle_chat(self, request: web.Request) -> web.Response:
        body = await self._read_json(request)
        text = str(body.get("text") or "").strip()
        if not text:
            return web.json_response({"error": "text is required"}, status=400)

        msg = IncomingMessage(
            text=text,
            chat_id=_WEB_CHAT_ID,
            sender=request.remote or "",
            connector_name=self.name,
        )
        try:
            reply = await self._handler(msg)
        except Exception as e:
            logger.error("Error processing web message: %s", e)
            return web.json_response({"error": "internal error"}, status=500)

        await self.reply(msg.chat_id, reply)
        return web.json_response({"reply": reply.text, "intent": reply.intent})

    async def _get_memory(self, request: web.Request) -> web.Response:
        return web.json_response(self._chatmate.memory.load().to_dict())

    async def _put_memory(self, request: web.Request) -> web.Response:
        body = await self._read_json(request)
        try:
            record = self._chatmate.update_settings(
                str(body.get("name") or ""), str(body.get("tone") or "friendly")
            )
        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response(record.to_dict())

    async def _delete_memory(self, request: web.Request) -> web.Response:
        self._chatmate.clear_memory()
        return web.json_response({"status": "cleared"})

    async def _get_logs(self, request: web.Request) -> web.Response:
        entries = self._chatmate.activity.entries()
        return web.json_response({"entries": [e.to_dict() for e in entries]})

    async def _delete_logs(self, request: web.Request) -> web.Response:
        self._chatmate.activity.clear()
        return web.json_response({"status": "cleared"})

    async def _health(self, request: web.Request) -> web.Response:
        mode = "live" if self._chatmate.weather.live else "simulated"
        return web.json_response({"status": "ok", "weather": mode})
