"""Common reading type and adapter interface for climate data sources.

Every provider (weather station, environment controller, public weather
API) produces the same RawReading so the pollers never branch on vendor
response formats.
"""

import json
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, ClassVar, Iterable, Optional

import httpx
import pydantic
from pydantic import BaseModel

from ..config import settings
from ..errors import NetworkError, SerializationError


@dataclass
class RawReading:
    """One observation from a source, before storage. Metric units."""
    temperature_c: float
    humidity_pct: float
    vpd_kpa: Optional[float] = None
    precipitation_mm: Optional[float] = None


class SourceAdapter(ABC):
    """A provider that turns a stored JSON config into a RawReading.

    Adapters do no caching and no retrying; a failed fetch raises one of
    the PipelineError subclasses and the next scheduled pass tries again.
    """

    provider: ClassVar[str]
    config_model: ClassVar[type[BaseModel]]

    def parse_config(self, raw: str | dict) -> BaseModel:
        """Decode a zone or device config blob.

        Raises:
            SerializationError: The blob is not JSON or misses required keys.
        """
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
            return self.config_model.model_validate(data)
        except (ValueError, TypeError, pydantic.ValidationError) as exc:
            raise SerializationError(f"bad {self.provider} config: {exc}") from exc

    @abstractmethod
    async def fetch_reading(self, client: httpx.AsyncClient, config: Any) -> RawReading:
        """Fetch the current reading for one configured source."""

    async def fetch_for_ports(
        self, client: httpx.AsyncClient, config: Any, ports: Iterable[int],
    ) -> dict[int, RawReading]:
        """Readings for every requested port of one shared device.

        Sources without ports make a single fetch and report the same
        reading for every port. Ports the device has no data for are absent
        from the result.
        """
        reading = await self.fetch_reading(client, config)
        return {port: reading for port in ports}


@asynccontextmanager
async def open_client(client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``client`` untouched, or a fresh AsyncClient closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.http_timeout_sec) as fresh:
        yield fresh


def response_json(resp: httpx.Response, label: str) -> Any:
    """Decode a JSON body, mapping decode failures to SerializationError."""
    try:
        return resp.json()
    except ValueError as exc:
        raise SerializationError(f"{label} response parse error: {exc}") from exc


def require_success(resp: httpx.Response, label: str) -> None:
    """Raise NetworkError carrying the full body on a non-2xx response."""
    if not resp.is_success:
        raise NetworkError(f"{label} API error {resp.status_code}: {resp.text}")


def as_float(value: Any) -> Optional[float]:
    """JSON number to float; anything else (including bools) is None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
