"""Current weather lookup powered by the OpenWeather API."""

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from chat_agent.config import get_config
from chat_agent.decision import ToolName
from chat_agent.exceptions import ToolError
from chat_agent.logging import get_logger
from chat_agent.tools.registry import Tool

log = get_logger(__name__)


@dataclass
class WeatherReading:
    """Current conditions for one city."""

    temperature: float
    humidity: float
    description: str
    city: str


class WeatherTool(Tool):
    """Get current weather for one or more cities."""

    name = ToolName.GET_WEATHER
    description = (
        "Get current weather for one or more cities. Use 'cities' parameter as string "
        "for single city or array of strings for multiple cities."
    )

    def __init__(self):
        self.client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": "Chat Agent/0.1.0 (Weather Tool)"},
        )

    @staticmethod
    def _city_list(cities: Any) -> list[str]:
        if isinstance(cities, str):
            values = [cities]
        elif isinstance(cities, (list, tuple)):
            values = [str(item) for item in cities]
        else:
            values = []
        return [value.strip() for value in values if value and value.strip()]

    async def _lookup(self, city: str, api_key: str) -> WeatherReading:
        cfg = get_config().weather
        try:
            response = await self.client.get(
                f"{cfg.base_url.rstrip('/')}/weather",
                params={"q": city, "appid": api_key, "units": cfg.units},
                timeout=cfg.timeout,
            )
            response.raise_for_status()
            data = response.json()
            return WeatherReading(
                temperature=data["main"]["temp"],
                humidity=data["main"]["humidity"],
                description=data["weather"][0]["description"],
                city=data["name"],
            )
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            # httpx error text carries the request URL, and with it the appid.
            status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            log.error("Weather lookup failed", city=city, status=status, error_type=type(e).__name__)
            raise ToolError("Failed to fetch weather data") from None

    async def execute(self, cities: Any = None, **kwargs: Any) -> list[WeatherReading]:
        """Look up every city concurrently; any failure fails the whole call."""
        city_list = self._city_list(cities)
        if not city_list:
            raise ToolError("'cities' is required (a city name or a list of names)")

        api_key = get_config().weather.resolved_api_key()
        if not api_key:
            raise ToolError(
                "Missing OpenWeather API key. Set weather.api_key in config "
                "or OPENWEATHER_API_KEY environment variable."
            )

        tasks = [asyncio.create_task(self._lookup(city, api_key)) for city in city_list]
        try:
            readings = await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Every lookup is awaited, failed and cancelled ones included.
            await asyncio.gather(*tasks, return_exceptions=True)

        log.info("Weather fetched", cities=city_list)
        return list(readings)

    async def close(self) -> None:
        await self.client.aclose()
