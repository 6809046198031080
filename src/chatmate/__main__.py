"""Entry point: python -m chatmate [chat|serve]

- No args / "chat": Interactive CLI REPL
- "serve":          HTTP JSON API for a browser front end
"""

from __future__ import annotations

import asyncio
import logging
import sys

from chatmate.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_cli() -> None:
    """Interactive CLI REPL mode."""
    config = load_config()
    # Keep the REPL readable: only warnings and up on the console
    _setup_logging("WARNING" if config.log_level.upper() == "INFO" else config.log_level)

    from chatmate.connectors.cli import CLIConnector
    from chatmate.daemon import ChatmateDaemon

    chatmate = ChatmateDaemon(config).build_chatmate()
    chatmate.add_connector(CLIConnector(chatmate))

    try:
        asyncio.run(chatmate.start())
    except KeyboardInterrupt:
        pass


def _run_serve() -> None:
    """Daemon mode — HTTP connector."""
    config = load_config()
    _setup_logging(config.log_level)

    from chatmate.daemon import AlreadyRunning, ChatmateDaemon

    daemon = ChatmateDaemon(config)
    try:
        asyncio.run(daemon.run())
    except AlreadyRunning as e:
        print(f"{e}. Exiting.", file=sys.stderr)
        sys.exit(1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "serve":
        _run_serve()
    else:
        print("Usage: python -m chatmate [chat|serve]")
        print("  chat   — Interactive CLI REPL (default)")
        print("  serve  — HTTP JSON API")
        sys.exit(1)


if __name__ == "__main__":
    main()
