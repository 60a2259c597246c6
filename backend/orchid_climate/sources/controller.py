"""AC Infinity environment controller adapter.

The AC Infinity cloud API is undocumented; this follows what the mobile
app sends. Two calls per fetch: a login that returns a session token, then
the account's full device list. Sensor values come back scaled by 100 and
temperature is Fahrenheit.
"""

import logging
from typing import Any, Iterable, Optional

import httpx
from pydantic import BaseModel

from ..errors import AuthError, NetworkError, SerializationError, ValidationError
from ..services.calculations import fahrenheit_to_celsius
from .base import RawReading, SourceAdapter, as_float, response_json

logger = logging.getLogger(__name__)

AC_INFINITY_BASE_URL = "http://www.acinfinityserver.com/api"
LOGIN_URL = f"{AC_INFINITY_BASE_URL}/user/appUserLogin"
DEVICE_LIST_URL = f"{AC_INFINITY_BASE_URL}/user/devInfoListAll"

# The server expects this exact (misspelled) key; "appPassword" is rejected.
PASSWORD_FIELD = "appPasswordl"

VALUE_SCALE = 100.0


class ControllerConfig(BaseModel):
    email: str
    password: str
    device_id: str
    port: int = 1


def decode_port(port_data: dict) -> RawReading:
    """Convert one port entry (values ×100, °F) to a metric RawReading."""
    temp_f_raw = as_float(port_data.get("temperatureF")) or 0.0
    humidity_raw = as_float(port_data.get("humidity")) or 0.0
    vpd_raw = as_float(port_data.get("vpdnums"))

    return RawReading(
        temperature_c=fahrenheit_to_celsius(temp_f_raw / VALUE_SCALE),
        humidity_pct=humidity_raw / VALUE_SCALE,
        vpd_kpa=vpd_raw / VALUE_SCALE if vpd_raw is not None else None,
    )


def _port_id(port_data: Any) -> Optional[int]:
    if not isinstance(port_data, dict):
        return None
    value = port_data.get("portId")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class ControllerAdapter(SourceAdapter):
    """Login + device-list fetch for a single port or every port at once."""

    provider = "ac_infinity"
    config_model = ControllerConfig

    async def _login(self, client: httpx.AsyncClient, email: str, password: str) -> str:
        body = {"appEmail": email, PASSWORD_FIELD: password}
        try:
            resp = await client.post(LOGIN_URL, json=body)
        except httpx.HTTPError as exc:
            raise NetworkError(f"AC Infinity login request failed: {exc}") from exc

        payload = response_json(resp, "AC Infinity login")
        data = payload.get("data") if isinstance(payload, dict) else None
        token = data.get("appId") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("AC Infinity login failed: no token in response")
        return token

    async def _find_device(
        self, client: httpx.AsyncClient, config: ControllerConfig,
    ) -> list[dict]:
        """Log in, list devices, return the target device's port entries."""
        token = await self._login(client, config.email, config.password)

        try:
            resp = await client.post(DEVICE_LIST_URL, json={}, headers={"token": token})
        except httpx.HTTPError as exc:
            raise NetworkError(f"AC Infinity device list request failed: {exc}") from exc

        payload = response_json(resp, "AC Infinity device list")
        devices = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(devices, list):
            raise SerializationError("No device data in AC Infinity response")

        device = next(
            (d for d in devices if isinstance(d, dict) and d.get("devId") == config.device_id),
            None,
        )
        if device is None:
            raise ValidationError(
                f"Device '{config.device_id}' not found in AC Infinity account"
            )

        ports = device.get("ports")
        if not isinstance(ports, list):
            raise SerializationError("No ports on AC Infinity device")
        return ports

    async def fetch_reading(self, client: httpx.AsyncClient, config: ControllerConfig) -> RawReading:
        ports = await self._find_device(client, config)

        port_data = next((p for p in ports if _port_id(p) == config.port), None)
        if port_data is None and ports:
            # Single-sensor controllers report their only probe under another ID
            logger.debug(
                "AC Infinity port %d missing on %s, using first port",
                config.port, config.device_id,
            )
            port_data = ports[0]
        if not isinstance(port_data, dict):
            raise ValidationError(
                f"Port {config.port} not found on device '{config.device_id}'"
            )
        return decode_port(port_data)

    async def fetch_all_ports(
        self, client: httpx.AsyncClient, config: ControllerConfig,
    ) -> dict[int, RawReading]:
        """One login + list call; readings keyed by port ID.

        Ports without an ID are skipped. ``config.port`` is ignored.
        """
        ports = await self._find_device(client, config)

        readings: dict[int, RawReading] = {}
        for port_data in ports:
            port_id = _port_id(port_data)
            if port_id is None:
                continue
            readings[port_id] = decode_port(port_data)
        return readings

    async def fetch_for_ports(
        self, client: httpx.AsyncClient, config: ControllerConfig, ports: Iterable[int],
    ) -> dict[int, RawReading]:
        all_ports = await self.fetch_all_ports(client, config)
        return {port: all_ports[port] for port in ports if port in all_ports}
