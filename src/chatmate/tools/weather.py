"""Weather tool — OpenWeatherMap current conditions with a simulated fallback.

Without an API key every reading is simulated. With one, a single GET is
attempted; any provider failure degrades to a simulated reading so the turn
always gets an answer.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

import aiohttp

from chatmate.errors import MissingArgument, ProviderError

if TYPE_CHECKING:
    from chatmate.config import WeatherConfig

logger = logging.getLogger(__name__)

WEATHER_PATH = "/data/2.5/weather"

SIMULATED_READINGS = (
    "Weather in {city}: sunny, 24°C, humidity 40% (simulated).",
    "Weather in {city}: light rain, 16°C, humidity 82% (simulated).",
    "Weather in {city}: overcast clouds, 19°C, humidity 65% (simulated).",
    "Weather in {city}: clear sky, 12°C, humidity 55% (simulated).",
)


class WeatherTool:
    """Current-weather lookup for a city."""

    def __init__(self, config: WeatherConfig, rng: random.Random | None = None) -> None:
        self._config = config
        self._rng = rng or random.Random()

    @property
    def live(self) -> bool:
        return bool(self._config.api_key)

    async def lookup(self, city: str) -> str:
        """Return a one-line reading for ``city``. Raises MissingArgument if empty."""
        city = (city or "").strip()
        if not city:
            raise MissingArgument("city")

        if not self.live:
            return self.simulate(city)

        try:
            data = await self._fetch(city)
        except ProviderError as e:
            logger.warning("Weather provider failed for %r (%s), using simulated reading", city, e)
            return self.simulate(city)
        return self._format(city, data)

    def simulate(self, city: str) -> str:
        return self._rng.choice(SIMULATED_READINGS).format(city=city)

    async def _fetch(self, city: str) -> dict:
        url = f"{self._config.base_url}{WEATHER_PATH}"
        params = {"q": city, "units": "metric", "appid": self._config.api_key}
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        raise ProviderError(f"HTTP {resp.status}", status=resp.status)
                    data = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ProviderError(f"timed out after {self._config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"transport error: {e}") from e
        except ValueError as e:
            raise ProviderError(f"undecodable response: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError("unexpected response shape")
        return data

    @staticmethod
    def _format(city: str, data: dict) -> str:
        main = data.get("main")
        if not isinstance(main, dict):
            main = {}
        conditions = data.get("weather")
        first = conditions[0] if isinstance(conditions, list) and conditions else None
        temp = main.get("temp")
        humidity = main.get("humidity")
        description = (first.get("description") if isinstance(first, dict) else None) or "unknown"

        temp_text = f"{temp}°C" if temp is not None else "N/A"
        humidity_text = f"{humidity}%" if humidity is not None else "N/A"
        name = data.get("name") or city
        return f"Weather in {name}: {description}, {temp_text}, humidity {humidity_text}."
