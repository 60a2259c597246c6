"""Climate and watering alert engine.

Compares each orchid's structured requirements against the snapshot of
the zone it sits in (matched by placement name) and flags temperature or
humidity outside the configured range, plus overdue watering.

New alerts are deduplicated against unacknowledged alerts with the same
owner, type and message inside a trailing window, so a zone that stays
cold all afternoon produces one alert rather than one per poll. Critical
and warning alerts are pushed to every subscription the owner has.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import StorageError
from ..models.alert import AlertModel
from ..models.collection import OrchidModel, PushSubscriptionModel
from ..models.database import SessionFactory, SessionLocal, as_utc
from .push import PushSink, PushSubscription, get_push_sink
from .snapshot import ClimateSnapshot, DataQuality, snapshots_by_zone_name

logger = logging.getLogger(__name__)

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"

PUSH_TITLES = {
    SEVERITY_CRITICAL: "Critical Alert",
    SEVERITY_WARNING: "Warning",
}

TEMP_CRITICAL_DELTA_C = 5.0
HUMIDITY_CRITICAL_DELTA_PCT = 15.0


@dataclass
class NewAlert:
    owner: str
    alert_type: str
    severity: str
    message: str
    orchid_id: Optional[int] = None
    zone_id: Optional[int] = None


@dataclass
class OrchidRequirements:
    id: int
    owner: str
    name: str
    placement: str
    water_frequency_days: int
    last_watered_at: Optional[datetime] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    humidity_min: Optional[float] = None
    humidity_max: Optional[float] = None

    @classmethod
    def from_model(cls, orchid: OrchidModel) -> "OrchidRequirements":
        return cls(
            id=orchid.id,
            owner=orchid.owner,
            name=orchid.name,
            placement=orchid.placement,
            water_frequency_days=orchid.water_frequency_days,
            last_watered_at=as_utc(orchid.last_watered_at),
            temp_min=orchid.temp_min,
            temp_max=orchid.temp_max,
            humidity_min=orchid.humidity_min,
            humidity_max=orchid.humidity_max,
        )


def _severity(diff: float, critical_delta: float) -> str:
    return SEVERITY_CRITICAL if diff > critical_delta else SEVERITY_WARNING


def _climate_alerts(orchid: OrchidRequirements, snap: ClimateSnapshot) -> list[NewAlert]:
    alerts: list[NewAlert] = []
    temp = snap.avg_temp_c
    hum = snap.avg_humidity_pct

    def add(alert_type: str, severity: str, message: str) -> None:
        alerts.append(NewAlert(
            owner=orchid.owner,
            alert_type=alert_type,
            severity=severity,
            message=message,
            orchid_id=orchid.id,
            zone_id=snap.zone_id,
        ))

    if orchid.temp_min is not None and orchid.temp_min - temp > 0:
        add("temperature_low", _severity(orchid.temp_min - temp, TEMP_CRITICAL_DELTA_C),
            f"{orchid.name}: Temperature {temp:.1f}C is below minimum {orchid.temp_min:.1f}C")

    if orchid.temp_max is not None and temp - orchid.temp_max > 0:
        add("temperature_high", _severity(temp - orchid.temp_max, TEMP_CRITICAL_DELTA_C),
            f"{orchid.name}: Temperature {temp:.1f}C is above maximum {orchid.temp_max:.1f}C")

    if orchid.humidity_min is not None and orchid.humidity_min - hum > 0:
        add("humidity_low", _severity(orchid.humidity_min - hum, HUMIDITY_CRITICAL_DELTA_PCT),
            f"{orchid.name}: Humidity {hum:.0f}% is below minimum {orchid.humidity_min:.0f}%")

    if orchid.humidity_max is not None and hum - orchid.humidity_max > 0:
        add("humidity_high", _severity(hum - orchid.humidity_max, HUMIDITY_CRITICAL_DELTA_PCT),
            f"{orchid.name}: Humidity {hum:.0f}% is above maximum {orchid.humidity_max:.0f}%")

    return alerts


def check_alerts(
    orchids: list[OrchidRequirements],
    snapshots: Mapping[tuple[str, str], ClimateSnapshot],
    now: Optional[datetime] = None,
) -> list[NewAlert]:
    """Evaluate every orchid against its zone snapshot. Pure: nothing is stored.

    ``snapshots`` is keyed by (owner, zone name). Unavailable snapshots are
    ignored, so a zone silent for more than 48h raises no climate alerts.
    """
    now = now or datetime.now(timezone.utc)
    alerts: list[NewAlert] = []

    for orchid in orchids:
        snap = snapshots.get((orchid.owner, orchid.placement))
        if snap is None:
            logger.debug("Alert check: no zone named '%s' for %s", orchid.placement, orchid.name)
        elif snap.quality != DataQuality.UNAVAILABLE:
            alerts.extend(_climate_alerts(orchid, snap))

        if orchid.last_watered_at is not None:
            days_since = (now - as_utc(orchid.last_watered_at)).days
            if days_since > orchid.water_frequency_days:
                overdue = days_since - orchid.water_frequency_days
                alerts.append(NewAlert(
                    owner=orchid.owner,
                    alert_type="watering_overdue",
                    severity=SEVERITY_INFO,
                    message=f"{orchid.name}: Watering overdue by {overdue} days",
                    orchid_id=orchid.id,
                ))

    return alerts


# --- Persistence ---

def is_duplicate(db: Session, alert: NewAlert, since: datetime) -> bool:
    """True if an identical unacknowledged alert was created after ``since``."""
    existing = (
        db.query(AlertModel.id)
        .filter(AlertModel.owner == alert.owner)
        .filter(AlertModel.alert_type == alert.alert_type)
        .filter(AlertModel.message == alert.message)
        .filter(AlertModel.acknowledged_at.is_(None))
        .filter(AlertModel.created_at > since)
        .first()
    )
    return existing is not None


def store_alerts(
    session_factory: SessionFactory,
    alerts: list[NewAlert],
    dedup_hours: int,
    now: Optional[datetime] = None,
) -> list[NewAlert]:
    """Persist alerts that are not duplicates.

    Returns:
        The alerts that were actually stored.

    Raises:
        StorageError: if the alert table cannot be written.
    """
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(hours=dedup_hours)
    stored: list[NewAlert] = []

    db = session_factory()
    try:
        for alert in alerts:
            if is_duplicate(db, alert, since):
                logger.debug("Alert skipped (duplicate): %s", alert.message)
                continue
            db.add(AlertModel(
                owner=alert.owner,
                orchid_id=alert.orchid_id,
                zone_id=alert.zone_id,
                alert_type=alert.alert_type,
                severity=alert.severity,
                message=alert.message,
                created_at=now,
            ))
            # Flush so a repeat within this batch is caught too
            db.flush()
            stored.append(alert)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"failed to store alerts: {exc}") from exc
    finally:
        db.close()

    return stored


def acknowledge_alert(db: Session, alert_id: int, now: Optional[datetime] = None) -> Optional[AlertModel]:
    """Mark an alert acknowledged. Returns None if it does not exist."""
    alert = db.get(AlertModel, alert_id)
    if alert is None:
        return None
    if alert.acknowledged_at is None:
        alert.acknowledged_at = now or datetime.now(timezone.utc)
        db.commit()
        db.refresh(alert)
    return alert


# --- Push fan-out ---

def _subscriptions_for(session_factory: SessionFactory, owner: str) -> list[PushSubscription]:
    db = session_factory()
    try:
        rows = db.query(PushSubscriptionModel).filter(PushSubscriptionModel.owner == owner).all()
        return [PushSubscription(r.endpoint, r.p256dh, r.auth) for r in rows]
    finally:
        db.close()


async def push_alerts(
    session_factory: SessionFactory,
    sink: PushSink,
    alerts: list[NewAlert],
) -> tuple[int, int]:
    """Send critical/warning alerts to each of the owner's subscriptions.

    A failed delivery is logged and the remaining subscriptions still get
    theirs.

    Returns:
        (delivered, failed) counts.
    """
    delivered = 0
    failed = 0
    for alert in alerts:
        title = PUSH_TITLES.get(alert.severity)
        if title is None:
            continue
        try:
            subs = _subscriptions_for(session_factory, alert.owner)
        except SQLAlchemyError as exc:
            logger.warning("Alert push: failed to query subscriptions for %s: %s", alert.owner, exc)
            continue

        for sub in subs:
            try:
                await sink.send(sub, title, alert.message)
                delivered += 1
            except Exception as exc:
                failed += 1
                logger.warning("Alert push: delivery to %s failed: %s", sub.endpoint, exc)
    return delivered, failed


# --- Pass entry point ---

def load_requirements(session_factory: SessionFactory) -> list[OrchidRequirements]:
    """Orchids with at least one threshold or a watering date."""
    db = session_factory()
    try:
        rows = (
            db.query(OrchidModel)
            .filter(or_(
                OrchidModel.temp_min.isnot(None),
                OrchidModel.temp_max.isnot(None),
                OrchidModel.humidity_min.isnot(None),
                OrchidModel.humidity_max.isnot(None),
                OrchidModel.last_watered_at.isnot(None),
            ))
            .order_by(OrchidModel.id)
            .all()
        )
        return [OrchidRequirements.from_model(r) for r in rows]
    finally:
        db.close()


async def check_and_send_alerts(
    session_factory: SessionFactory = SessionLocal,
    push_sink: Optional[PushSink] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Run one alert-check pass: evaluate, deduplicate, store, push."""
    now = now or datetime.now(timezone.utc)
    result = {"generated": 0, "stored": 0, "pushed": 0, "push_failures": 0}

    try:
        orchids = load_requirements(session_factory)
    except SQLAlchemyError as exc:
        logger.warning("Alert check: failed to query orchids: %s", exc)
        return result
    if not orchids:
        return result

    db = session_factory()
    try:
        snapshots = snapshots_by_zone_name(db, now=now)
    except SQLAlchemyError as exc:
        logger.warning("Alert check: failed to query readings: %s", exc)
        return result
    finally:
        db.close()

    new_alerts = check_alerts(orchids, snapshots, now)
    result["generated"] = len(new_alerts)
    if not new_alerts:
        return result

    logger.info("Alert check: %d new alerts generated", len(new_alerts))

    stored = store_alerts(session_factory, new_alerts, settings.alert_dedup_hours, now)
    result["stored"] = len(stored)

    sink = push_sink if push_sink is not None else get_push_sink()
    result["pushed"], result["push_failures"] = await push_alerts(session_factory, sink, stored)
    return result
