"""WeatherFlow Tempest station adapter.

Reads the latest observation from the Tempest REST API. The station
endpoint returns ``obs`` as a list whose first element is normally a
positional array (index 7 = air temperature °C, index 8 = relative
humidity %). Some accounts get a named-key object instead; both work.

API docs: https://weatherflow.github.io/Tempest/api/
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel

from ..errors import NetworkError, SerializationError
from ..services.calculations import calculate_vpd
from .base import RawReading, SourceAdapter, as_float, require_success, response_json

logger = logging.getLogger(__name__)

TEMPEST_URL = "https://swd.weatherflow.com/swd/rest/observations/station/{station_id}"

# Positions inside an obs_st array
OBS_AIR_TEMPERATURE = 7
OBS_RELATIVE_HUMIDITY = 8


class StationConfig(BaseModel):
    station_id: str
    token: str


def parse_observation(payload: Any) -> tuple[float, float]:
    """Extract (temperature_c, humidity_pct) from a station response body.

    Raises:
        SerializationError: No observation, or a required field is missing.
    """
    obs_list = payload.get("obs") if isinstance(payload, dict) else None
    if not isinstance(obs_list, list) or not obs_list:
        raise SerializationError("No observations in Tempest response")
    obs = obs_list[0]

    if isinstance(obs, dict):
        temp = as_float(obs.get("air_temperature"))
        if temp is None:
            raise SerializationError("Missing 'air_temperature' in Tempest observation")
        hum = as_float(obs.get("relative_humidity"))
        if hum is None:
            raise SerializationError("Missing 'relative_humidity' in Tempest observation")
        return temp, hum

    if isinstance(obs, list):
        temp = as_float(obs[OBS_AIR_TEMPERATURE]) if len(obs) > OBS_AIR_TEMPERATURE else None
        if temp is None:
            raise SerializationError(
                f"Missing temperature at index {OBS_AIR_TEMPERATURE} (array length={len(obs)})"
            )
        hum = as_float(obs[OBS_RELATIVE_HUMIDITY]) if len(obs) > OBS_RELATIVE_HUMIDITY else None
        if hum is None:
            raise SerializationError(
                f"Missing humidity at index {OBS_RELATIVE_HUMIDITY} (array length={len(obs)})"
            )
        return temp, hum

    raise SerializationError(f"Unexpected obs[0] type: {type(obs).__name__}")


class StationAdapter(SourceAdapter):
    """One GET per station; VPD is derived locally."""

    provider = "tempest"
    config_model = StationConfig

    async def fetch_reading(self, client: httpx.AsyncClient, config: StationConfig) -> RawReading:
        url = TEMPEST_URL.format(station_id=config.station_id)
        try:
            resp = await client.get(url, params={"token": config.token})
        except httpx.HTTPError as exc:
            raise NetworkError(f"Tempest API request failed: {exc}") from exc

        require_success(resp, "Tempest")
        temp_c, humidity = parse_observation(response_json(resp, "Tempest"))
        logger.debug("Tempest %s: %.1fC %.0f%%", config.station_id, temp_c, humidity)

        return RawReading(
            temperature_c=temp_c,
            humidity_pct=humidity,
            vpd_kpa=calculate_vpd(temp_c, humidity),
        )
