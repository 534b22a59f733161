"""Weather lookup result model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class WeatherReport(BaseModel):
    """Current conditions for a place."""

    model_config = ConfigDict(frozen=True)

    temp: float
    """Temperature in degrees Celsius."""

    condition: str
    """Short description such as ``"Sunny"`` or ``"Rain"``."""

    @classmethod
    def from_openweather(cls, payload: dict[str, Any]) -> WeatherReport | None:
        """Map an OpenWeatherMap ``/weather`` response; ``None`` if it has no temperature."""
        main = payload.get("main")
        if not isinstance(main, dict) or not isinstance(main.get("temp"), (int, float)):
            return None
        condition = ""
        weather = payload.get("weather")
        if isinstance(weather, list) and weather and isinstance(weather[0], dict):
            condition = str(weather[0].get("main") or weather[0].get("description") or "")
        return cls(temp=float(main["temp"]), condition=condition)
