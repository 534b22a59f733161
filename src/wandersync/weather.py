"""Current-weather lookup behind the rate-limited fetch guard."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from wandersync._constants import WEATHER_CACHE_PREFIX, WEATHER_COOLDOWN_KEY
from wandersync.config import SyncConfig
from wandersync.exceptions import MalformedRemoteDataError, RateLimitError, SyncTransportError
from wandersync.guard import CircuitBreakerState, RateLimitedFetchGuard
from wandersync.models.weather import WeatherReport
from wandersync.storage import LocalStore

_logger = logging.getLogger(__name__)


class WeatherClient:
    """Query an OpenWeatherMap-compatible ``/weather`` endpoint."""

    def __init__(self, config: SyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def current(self, city: str) -> dict[str, Any] | None:
        """Return ``{"temp", "condition"}`` for *city*, or ``None`` when the API has no temperature.

        Raises
        ------
        RateLimitError
            HTTP 429.
        SyncTransportError
            Network failure or any other non-200 status.
        MalformedRemoteDataError
            Body is not UTF-8 JSON.
        """
        url = self._config.weather_url
        params = {"q": city, "units": "metric"}
        if self._config.weather_api_key:
            params["appid"] = self._config.weather_api_key

        _logger.debug("GET %s q=%s", url, city)
        try:
            async with self._http.get(url, params=params) as resp:
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise MalformedRemoteDataError(f"Undecodable body from {url}: {exc}") from exc
                if resp.status == 429:
                    raise RateLimitError(f"HTTP 429 from {url}", status_code=429, endpoint=url)
                if resp.status != 200:
                    raise SyncTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except SyncTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SyncTransportError(f"Weather request failed: {exc}", endpoint=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRemoteDataError(f"Invalid JSON from {url}: {text[:200]}") from exc

        report = WeatherReport.from_openweather(body) if isinstance(body, dict) else None
        return report.model_dump() if report is not None else None


class WeatherService:
    """Cached weather per city name, degrading to stale data when throttled."""

    def __init__(
        self,
        config: SyncConfig,
        store: LocalStore,
        http_session: aiohttp.ClientSession,
        *,
        breaker: CircuitBreakerState | None = None,
    ) -> None:
        self._client = WeatherClient(config, http_session)
        self._guard = RateLimitedFetchGuard(
            self._client.current,
            store,
            namespace=WEATHER_CACHE_PREFIX,
            freshness=config.weather_cache_ttl,
            cooldown=config.weather_cooldown,
            max_retries=config.weather_max_retries,
            initial_delay=config.weather_initial_delay,
            breaker=breaker,
            cooldown_key=WEATHER_COOLDOWN_KEY,
        )

    @property
    def guard(self) -> RateLimitedFetchGuard:
        return self._guard

    async def get_city_weather(self, city: str) -> WeatherReport | None:
        if not city or not city.strip():
            return None
        data = await self._guard.fetch(city)
        if not isinstance(data, dict):
            return None
        return WeatherReport.model_validate(data)
