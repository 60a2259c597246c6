"""Open-Meteo current-conditions adapter.

Free, unauthenticated, keyed by coordinates. Used both for native-habitat
weather and for outdoor zones that have no hardware of their own.

API docs: https://open-meteo.com/en/docs
"""

import httpx
from pydantic import BaseModel

from ..errors import NetworkError, SerializationError
from ..services.calculations import calculate_vpd
from .base import RawReading, SourceAdapter, as_float, require_success, response_json

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_VARS = [
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation",
]


class WeatherApiConfig(BaseModel):
    latitude: float
    longitude: float


class OpenMeteoAdapter(SourceAdapter):
    """Current temperature, humidity and precipitation for a coordinate."""

    provider = "weather_api"
    config_model = WeatherApiConfig

    async def fetch_current(
        self, client: httpx.AsyncClient, latitude: float, longitude: float,
    ) -> RawReading:
        """Fetch current conditions. VPD is left unset; callers derive it if needed."""
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join(CURRENT_VARS),
        }
        try:
            resp = await client.get(OPEN_METEO_URL, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Open-Meteo request failed: {exc}") from exc

        require_success(resp, "Open-Meteo")
        payload = response_json(resp, "Open-Meteo")

        current = payload.get("current") if isinstance(payload, dict) else None
        if not isinstance(current, dict):
            raise SerializationError("Missing 'current' in Open-Meteo response")

        return RawReading(
            temperature_c=as_float(current.get("temperature_2m")) or 0.0,
            humidity_pct=as_float(current.get("relative_humidity_2m")) or 0.0,
            precipitation_mm=as_float(current.get("precipitation")) or 0.0,
        )

    async def fetch_reading(self, client: httpx.AsyncClient, config: WeatherApiConfig) -> RawReading:
        reading = await self.fetch_current(client, config.latitude, config.longitude)
        reading.vpd_kpa = calculate_vpd(reading.temperature_c, reading.humidity_pct)
        return reading
