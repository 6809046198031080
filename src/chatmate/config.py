"""Configuration loading from environment variables and chatmate.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_MEMORY_DIR = Path.home() / ".chatmate" / "memory"
_CONFIG_FILENAME = "chatmate.toml"

TURN_POLICIES = ("queue", "reject")


@dataclass
class WeatherConfig:
    """Weather provider configuration. No api_key means simulated readings only."""

    api_key: str = ""
    base_url: str = "https://api.openweathermap.org"
    timeout: float = 8.0


@dataclass
class WebConfig:
    """HTTP connector configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class ChatmateConfig:
    """Top-level Chatmate configuration."""

    weather: WeatherConfig = field(default_factory=WeatherConfig)
    web: WebConfig = field(default_factory=WebConfig)
    memory_dir: Path = _DEFAULT_MEMORY_DIR
    pid_file: Path = Path.home() / ".chatmate" / "chatmate.pid"
    turn_policy: str = "queue"
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ChatmateConfig:
    """Load configuration from environment variables and optional chatmate.toml.

    Priority: environment variables > chatmate.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.chatmate/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".chatmate" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    weather_data = file_data.get("weather", {})
    web_data = file_data.get("web", {})

    turn_policy = os.getenv("CHATMATE_TURN_POLICY", file_data.get("turn_policy", "queue"))
    if turn_policy not in TURN_POLICIES:
        raise ValueError(f"Unknown turn_policy '{turn_policy}'. Expected one of {TURN_POLICIES}")

    config = ChatmateConfig(
        weather=WeatherConfig(
            api_key=os.getenv("OPENWEATHER_API_KEY", weather_data.get("api_key", "")),
            base_url=os.getenv(
                "CHATMATE_WEATHER_URL",
                weather_data.get("base_url", "https://api.openweathermap.org"),
            ).rstrip("/"),
            timeout=float(os.getenv("CHATMATE_WEATHER_TIMEOUT", weather_data.get("timeout", 8.0))),
        ),
        web=WebConfig(
            host=os.getenv("CHATMATE_HOST", web_data.get("host", "127.0.0.1")),
            port=int(os.getenv("CHATMATE_PORT", web_data.get("port", 8080))),
        ),
        memory_dir=Path(
            os.getenv("CHATMATE_MEMORY_DIR", file_data.get("memory_dir", str(_DEFAULT_MEMORY_DIR)))
        ).expanduser(),
        turn_policy=turn_policy,
        log_level=os.getenv("CHATMATE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
