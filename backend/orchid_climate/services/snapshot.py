"""Zone climate snapshots.

A snapshot condenses a zone's recent readings into averages plus a data
quality tier based on how old the newest reading is. Snapshots are built
on demand and never stored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..config import settings
from ..models.climate_reading import ClimateReadingModel
from ..models.collection import GrowingZoneModel
from ..models.database import as_utc
from .calculations import calculate_vpd

FRESH_MAX_AGE_HOURS = 6  # exclusive
STALE_MAX_AGE_HOURS = 48  # inclusive


class DataQuality(str, Enum):
    FRESH = "Fresh"
    STALE = "Stale"
    UNAVAILABLE = "Unavailable"


@dataclass
class ClimateSnapshot:
    zone_name: str
    avg_temp_c: float
    avg_humidity_pct: float
    avg_vpd_kpa: float
    precipitation_48h_mm: Optional[float]
    newest_reading_at: datetime
    reading_count: int
    quality: DataQuality
    is_outdoor: bool
    zone_id: Optional[int] = None


def data_quality_from_age(newest: datetime, now: Optional[datetime] = None) -> DataQuality:
    """Classify by the age of the newest reading in whole hours.

    <6h is Fresh, 6h through 48h is Stale, beyond 48h is Unavailable.
    """
    now = now or datetime.now(timezone.utc)
    age_hours = int((now - as_utc(newest)).total_seconds() / 3600)
    if age_hours < FRESH_MAX_AGE_HOURS:
        return DataQuality.FRESH
    if age_hours <= STALE_MAX_AGE_HOURS:
        return DataQuality.STALE
    return DataQuality.UNAVAILABLE


def build_snapshot(
    zone_name: str,
    readings: Sequence,
    is_outdoor: bool,
    now: Optional[datetime] = None,
    zone_id: Optional[int] = None,
) -> Optional[ClimateSnapshot]:
    """Aggregate readings into a snapshot, or None when there are none.

    ``readings`` are ClimateReading rows (or anything with the same
    temperature/humidity/vpd/precipitation/recorded_at attributes).
    """
    if not readings:
        return None

    newest = max(as_utc(r.recorded_at) for r in readings)
    count = len(readings)
    avg_temp = sum(r.temperature for r in readings) / count
    avg_hum = sum(r.humidity for r in readings) / count

    vpds = [r.vpd for r in readings if r.vpd is not None]
    if vpds:
        avg_vpd = sum(vpds) / len(vpds)
    else:
        avg_vpd = calculate_vpd(avg_temp, avg_hum)

    precip: Optional[float] = None
    if is_outdoor:
        values = [r.precipitation for r in readings if r.precipitation is not None]
        if values:
            precip = sum(values)

    return ClimateSnapshot(
        zone_name=zone_name,
        avg_temp_c=avg_temp,
        avg_humidity_pct=avg_hum,
        avg_vpd_kpa=avg_vpd,
        precipitation_48h_mm=precip,
        newest_reading_at=newest,
        reading_count=count,
        quality=data_quality_from_age(newest, now),
        is_outdoor=is_outdoor,
        zone_id=zone_id,
    )


def load_zone_readings(
    db: Session, zone_id: int, now: Optional[datetime] = None,
) -> list[ClimateReadingModel]:
    """Readings from the snapshot window; the single newest one if the window is empty."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=settings.snapshot_window_hours)
    R = ClimateReadingModel

    recent = (
        db.query(R)
        .filter(R.zone_id == zone_id)
        .filter(R.recorded_at >= cutoff)
        .order_by(R.recorded_at)
        .all()
    )
    if recent:
        return recent

    latest = db.query(R).filter(R.zone_id == zone_id).order_by(R.recorded_at.desc()).first()
    return [latest] if latest is not None else []


def snapshot_for_zone(
    db: Session, zone: GrowingZoneModel, now: Optional[datetime] = None,
) -> Optional[ClimateSnapshot]:
    readings = load_zone_readings(db, zone.id, now)
    return build_snapshot(zone.name, readings, zone.is_outdoor, now, zone_id=zone.id)


def snapshots_by_zone_name(
    db: Session, owner: Optional[str] = None, now: Optional[datetime] = None,
) -> dict[tuple[str, str], ClimateSnapshot]:
    """Snapshots for every zone that has readings, keyed by (owner, zone name)."""
    query = db.query(GrowingZoneModel)
    if owner is not None:
        query = query.filter(GrowingZoneModel.owner == owner)

    result: dict[tuple[str, str], ClimateSnapshot] = {}
    for zone in query.order_by(GrowingZoneModel.id).all():
        snap = snapshot_for_zone(db, zone, now)
        if snap is not None:
            result[(zone.owner, zone.name)] = snap
    return result
