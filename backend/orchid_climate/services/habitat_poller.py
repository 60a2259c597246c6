"""Native-habitat weather poller.

Fetches current Open-Meteo conditions at the native coordinates of every
orchid in the collection, so users can compare their growing conditions
with the wild. Coordinates are rounded to 2 decimals (~1 km) and
deduplicated first; plants from the same valley share one API call.

Calls are made one at a time with a fixed pause between them, which keeps
the pass under Open-Meteo's fair-use rate regardless of collection size.
After the loop the compactor rolls older rows into summaries.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..errors import PipelineError
from ..models.collection import OrchidModel
from ..models.database import SessionFactory, SessionLocal
from ..models.habitat_weather import HabitatWeatherModel
from ..sources.base import open_client
from ..sources.open_meteo import OpenMeteoAdapter
from .compactor import compact_habitat_data

logger = logging.getLogger(__name__)

COORD_PRECISION = 2


def round_coordinate(value: float) -> float:
    """Round to 2 decimals with halves away from zero (0.125 -> 0.13, -0.375 -> -0.38)."""
    scale = 10 ** COORD_PRECISION
    return math.copysign(math.floor(abs(value) * scale + 0.5), value) / scale


def distinct_native_coordinates(session_factory: SessionFactory = SessionLocal) -> list[tuple[float, float]]:
    """Distinct (lat, lon) pairs across orchids, rounded to 2 decimals, sorted."""
    db = session_factory()
    try:
        rows = (
            db.query(OrchidModel.native_latitude, OrchidModel.native_longitude)
            .filter(OrchidModel.native_latitude.isnot(None))
            .filter(OrchidModel.native_longitude.isnot(None))
            .all()
        )
    finally:
        db.close()

    return sorted({
        (round_coordinate(lat), round_coordinate(lon))
        for lat, lon in rows
    })


async def poll_habitat_weather(
    session_factory: SessionFactory = SessionLocal,
    client: Optional[httpx.AsyncClient] = None,
    delay_ms: Optional[int] = None,
) -> dict:
    """Run one habitat-poll pass followed by compaction.

    Returns:
        Summary dict with coordinate, stored and failure counts plus the
        compactor's per-stage results.
    """
    delay = (delay_ms if delay_ms is not None else settings.habitat_request_delay_ms) / 1000.0
    adapter = OpenMeteoAdapter()
    stored = 0
    failures = 0

    try:
        coords = distinct_native_coordinates(session_factory)
    except SQLAlchemyError as exc:
        logger.warning("Habitat poll: failed to query coordinates: %s", exc)
        coords = []

    if not coords:
        logger.debug("Habitat poll: no orchids with native coordinates")
    else:
        logger.info("Habitat poll: fetching weather for %d coordinate pairs", len(coords))

    async with open_client(client) as http:
        for lat, lon in coords:
            try:
                reading = await adapter.fetch_current(http, lat, lon)
                if _store_habitat_reading(session_factory, lat, lon, reading):
                    stored += 1
                    logger.info(
                        "Habitat poll: stored reading for (%s, %s): %.1fC, %.0f%%, %.1fmm",
                        lat, lon, reading.temperature_c, reading.humidity_pct,
                        reading.precipitation_mm or 0.0,
                    )
                else:
                    failures += 1
            except PipelineError as exc:
                failures += 1
                logger.warning("Habitat poll: failed to fetch weather for (%s, %s): %s", lat, lon, exc)
            except Exception as exc:
                failures += 1
                logger.error("Habitat poll: unexpected error for (%s, %s): %s",
                             lat, lon, exc, exc_info=True)

            await asyncio.sleep(delay)

    # Compaction runs even when every fetch failed
    compaction = compact_habitat_data(session_factory)

    logger.info("Habitat poll completed")
    return {
        "coordinates": len(coords),
        "readings_stored": stored,
        "failures": failures,
        "compaction": compaction,
    }


def _store_habitat_reading(session_factory: SessionFactory, lat: float, lon: float, reading) -> bool:
    db = session_factory()
    try:
        db.add(HabitatWeatherModel(
            latitude=lat,
            longitude=lon,
            temperature=reading.temperature_c,
            humidity=reading.humidity_pct,
            precipitation=reading.precipitation_mm or 0.0,
            recorded_at=datetime.now(timezone.utc),
        ))
        db.commit()
        return True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Habitat poll: failed to store reading for (%s, %s): %s", lat, lon, exc)
        return False
    finally:
        db.close()
