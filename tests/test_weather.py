from __future__ import annotations

import json
from typing import Any

import pytest

from wandersync._constants import WEATHER_CACHE_PREFIX, WEATHER_COOLDOWN_KEY
from wandersync.config import SyncConfig
from wandersync.exceptions import MalformedRemoteDataError, RateLimitError
from wandersync.models.weather import WeatherReport
from wandersync.storage import MemoryStore
from wandersync.weather import WeatherClient, WeatherService

_OWM_BODY = {"main": {"temp": 21.3}, "weather": [{"main": "Clear", "description": "clear sky"}]}


class _FakeResponse:
    def __init__(self, status: int, text: str | bytes) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        if isinstance(self._text, bytes):
            return self._text.decode("utf-8")
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, *responses: tuple[int, str | bytes]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append({"url": url, **kwargs})
        status, text = self.responses.pop(0)
        return _FakeResponse(status, text)


def _config() -> SyncConfig:
    return SyncConfig(sync_url="https://sync.example.test", weather_api_key="k3y", weather_max_retries=0)


@pytest.mark.asyncio
async def test_client_queries_metric_units_with_key() -> None:
    session = _FakeSession((200, json.dumps(_OWM_BODY)))

    data = await WeatherClient(_config(), session).current("Lisbon")  # type: ignore[arg-type]

    assert data == {"temp": 21.3, "condition": "Clear"}
    assert session.calls[0]["params"] == {"q": "Lisbon", "units": "metric", "appid": "k3y"}


@pytest.mark.asyncio
async def test_client_maps_429_to_rate_limit() -> None:
    session = _FakeSession((429, "slow down"))

    with pytest.raises(RateLimitError) as excinfo:
        await WeatherClient(_config(), session).current("Lisbon")  # type: ignore[arg-type]

    assert excinfo.value.status_code == 429


@pytest.mark.asyncio
async def test_service_caches_per_normalized_city() -> None:
    session = _FakeSession((200, json.dumps(_OWM_BODY)))
    store = MemoryStore()
    service = WeatherService(_config(), store, session)  # type: ignore[arg-type]

    first = await service.get_city_weather("New York")
    second = await service.get_city_weather("  new york ")

    assert first == second == WeatherReport(temp=21.3, condition="Clear")
    assert len(session.calls) == 1
    assert store.keys() == [f"{WEATHER_CACHE_PREFIX}new_york"]


@pytest.mark.asyncio
async def test_service_throttled_without_cache_returns_none_and_opens_breaker() -> None:
    session = _FakeSession((429, "slow down"))
    service = WeatherService(_config(), MemoryStore(), session)  # type: ignore[arg-type]

    assert await service.get_city_weather("Lisbon") is None
    assert await service.get_city_weather("Porto") is None

    assert len(session.calls) == 1
    assert service.guard.breaker.cooldown_until > 0


@pytest.mark.asyncio
async def test_service_blank_city_makes_no_request() -> None:
    session = _FakeSession()
    service = WeatherService(_config(), MemoryStore(), session)  # type: ignore[arg-type]

    assert await service.get_city_weather("   ") is None
    assert session.calls == []


@pytest.mark.asyncio
async def test_undecodable_body_serves_stale_cache() -> None:
    session = _FakeSession((200, b"\xff\xfe{"))
    store = MemoryStore(
        {f"{WEATHER_CACHE_PREFIX}lisbon": json.dumps({"data": {"temp": 19.0, "condition": "Clouds"}, "timestamp": 0})}
    )
    service = WeatherService(_config(), store, session)  # type: ignore[arg-type]

    assert await service.get_city_weather("Lisbon") == WeatherReport(temp=19.0, condition="Clouds")
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_client_undecodable_body_is_malformed() -> None:
    session = _FakeSession((200, b"\xff\xfe{"))

    with pytest.raises(MalformedRemoteDataError):
        await WeatherClient(_config(), session).current("Lisbon")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_cooldown_is_persisted_across_services() -> None:
    store = MemoryStore()
    throttled = WeatherService(_config(), store, _FakeSession((429, "slow down")))  # type: ignore[arg-type]
    assert await throttled.get_city_weather("Lisbon") is None

    later_session = _FakeSession((200, json.dumps(_OWM_BODY)))
    restarted = WeatherService(_config(), store, later_session)  # type: ignore[arg-type]

    assert await restarted.get_city_weather("Lisbon") is None
    assert later_session.calls == []
    assert store.get_item(WEATHER_COOLDOWN_KEY) is not None
