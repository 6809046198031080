"""Daemon process — serves the HTTP connector until stopped.

Usage: python -m chatmate serve

Manages:
- Web connector lifecycle
- PID file, so a second ``serve`` on the same file refuses to start
- Graceful shutdown on SIGTERM/SIGINT or ``request_shutdown()``
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from chatmate.config import ChatmateConfig, load_config
from chatmate.connectors.web import WebConnector
from chatmate.core import Chatmate

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class AlreadyRunning(RuntimeError):
    """Another live process owns the PID file."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Chatmate is already serving (pid={pid})")


class ChatmateDaemon:
    """Serves one Chatmate over HTTP until asked to stop."""

    def __init__(self, config: ChatmateConfig | None = None) -> None:
        self.config = config or load_config()
        self._stop_requested = asyncio.Event()

    # ── PID file ─────────────────────────────────────────────

    def _running_pid(self) -> int | None:
        """PID recorded in the PID file if that process is still alive."""
        try:
            pid = int(self.config.pid_file.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Unreadable PID file %s, treating it as stale", self.config.pid_file)
            return None

        if pid == os.getpid():
            return None
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return None
        except PermissionError:
            pass  # alive, owned by another user
        return pid

    def _claim_pid_file(self) -> None:
        """Record our PID, replacing a stale file. Raises AlreadyRunning."""
        pid = self._running_pid()
        if pid is not None:
            raise AlreadyRunning(pid)

        pid_file = self.config.pid_file
        pid_file.parent.mkdir(parents=True, exist_ok=True)
        pid_file.write_text(str(os.getpid()), encoding="utf-8")
        logger.info("Claimed PID file %s (pid=%d)", pid_file, os.getpid())

    def _release_pid_file(self) -> None:
        # Only remove the file while it still names this process
        try:
            recorded = self.config.pid_file.read_text(encoding="utf-8").strip()
        except OSError:
            return
        if recorded == str(os.getpid()):
            self.config.pid_file.unlink(missing_ok=True)

    # ── Shutdown ─────────────────────────────────────────────

    def request_shutdown(self, reason: str = "requested") -> None:
        logger.info("Shutdown %s", reason)
        self._stop_requested.set()

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, f"on {sig.name}")
            except (NotImplementedError, RuntimeError):
                # No loop signal support (Windows, or not the main thread)
                logger.debug("Cannot install handler for %s", sig.name)
                continue
            installed.append(sig)
        return installed

    # ── Build components ─────────────────────────────────────

    def build_chatmate(self) -> Chatmate:
        chatmate = Chatmate(self.config)
        mode = "live" if chatmate.weather.live else "simulated"
        logger.info("Chatmate ready (memory=%s, weather=%s)", chatmate.memory.path, mode)
        return chatmate

    # ── Serve loop ───────────────────────────────────────────

    async def run(self) -> None:
        self._claim_pid_file()
        installed = self._install_signal_handlers()

        chatmate = self.build_chatmate()
        chatmate.add_connector(WebConnector(self.config.web, chatmate))
        logger.info("Chatmate serving (turn_policy=%s)", self.config.turn_policy)

        try:
            await chatmate.start()
            await self._stop_requested.wait()
        finally:
            await chatmate.stop()
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)
            self._release_pid_file()
            logger.info("Chatmate stopped.")
