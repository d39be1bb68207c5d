"""
sources/weather.py — open-meteo-data edge function.

Request:
  {"latitude": 44.84, "longitude": -0.57, "days": 30}

Response shape:
  {
    "success": true,
    "data": {
      "aggregated": {
        "temperature":   {"avg": 14.2, "min": 6.1, "max": 23.8},
        "humidity":      {"avg": 71, "min": 40, "max": 98},
        "precipitation": {"total": 48.3, "days": 9},
        "wind":          {"avg": 12.4},
        "sunshine":      {"total": 182.5}
      },
      "daily": [...]
    }
  }
"""

from __future__ import annotations

from typing import Any

from frequence_shared.config import settings
from frequence_shared.constants import WEATHER_SNAPSHOTS_TABLE
from frequence_pipeline.errors import NoDataError
from frequence_pipeline.sources.base import EdgeFunctionSource


class WeatherSource(EdgeFunctionSource):
    """Recent weather aggregates for a marche."""

    function_name = "open-meteo-data"
    collection_type = "weather"
    table = WEATHER_SNAPSHOTS_TABLE

    def __init__(self, *, days: int | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("timeout", settings.weather_timeout_s)
        super().__init__(**kwargs)
        self.days = days if days is not None else settings.weather_days

    def build_body(self, latitude: float, longitude: float) -> dict[str, Any]:
        return {"latitude": latitude, "longitude": longitude, "days": self.days}

    def validate(self, payload: dict[str, Any]) -> None:
        super().validate(payload)
        if not (payload.get("success") and payload.get("data")):
            raise NoDataError(f"{self.function_name} returned no weather data")
