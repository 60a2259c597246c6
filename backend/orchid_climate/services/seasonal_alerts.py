"""Seasonal transition alerts.

Once a day, tell growers which orchids enter or leave their rest period
or bloom season this month or next. Months are hemisphere-adjusted per
owner. A range "ends" in the month after its end month. These are info
alerts only and are never pushed.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..models.collection import OrchidModel, UserPreferenceModel
from ..models.database import SessionFactory, SessionLocal
from .alerts import SEVERITY_INFO, NewAlert, store_alerts
from .seasonal import Hemisphere

logger = logging.getLogger(__name__)

# (orchid attribute, alert type, label, verb, transition is the month after)
TRANSITIONS = [
    ("rest_start_month", "seasonal_rest_start", "Rest period", "begins", False),
    ("rest_end_month", "seasonal_rest_end", "Rest period", "ends", True),
    ("bloom_start_month", "seasonal_bloom_start", "Bloom season", "begins", False),
    ("bloom_end_month", "seasonal_bloom_end", "Bloom season", "ends", True),
]


def next_month(month: int) -> int:
    return 1 if month == 12 else month + 1


def seasonal_alerts_for(orchid, hemisphere: Hemisphere, now: datetime) -> list[NewAlert]:
    """Transitions for one orchid falling in the current or next calendar month."""
    this_month = now.month
    following = next_month(this_month)
    alerts: list[NewAlert] = []

    for attr, alert_type, label, verb, after_end in TRANSITIONS:
        month = getattr(orchid, attr)
        if month is None:
            continue
        month = hemisphere.adjust_month(month)
        if after_end:
            month = next_month(month)

        if month == this_month:
            when = "this month"
        elif month == following:
            when = "next month"
        else:
            continue

        alerts.append(NewAlert(
            owner=orchid.owner,
            alert_type=alert_type,
            severity=SEVERITY_INFO,
            message=f"{orchid.name}: {label} {verb} {when}",
            orchid_id=orchid.id,
        ))
    return alerts


def check_seasonal_alerts(
    session_factory: SessionFactory = SessionLocal,
    now: Optional[datetime] = None,
) -> dict:
    """Run one seasonal-check pass."""
    now = now or datetime.now(timezone.utc)
    result = {"generated": 0, "stored": 0}

    db = session_factory()
    try:
        orchids = (
            db.query(OrchidModel)
            .filter(or_(
                OrchidModel.rest_start_month.isnot(None),
                OrchidModel.bloom_start_month.isnot(None),
            ))
            .order_by(OrchidModel.id)
            .all()
        )
        hemispheres = {
            p.owner: Hemisphere.from_code(p.hemisphere)
            for p in db.query(UserPreferenceModel).all()
        }

        alerts: list[NewAlert] = []
        for orchid in orchids:
            hemi = hemispheres.get(orchid.owner, Hemisphere.NORTHERN)
            alerts.extend(seasonal_alerts_for(orchid, hemi, now))
    except SQLAlchemyError as exc:
        logger.warning("Seasonal alert check: failed to query orchids: %s", exc)
        return result
    finally:
        db.close()

    result["generated"] = len(alerts)
    if not alerts:
        return result

    logger.info("Seasonal alert check: %d alerts generated", len(alerts))
    stored = store_alerts(session_factory, alerts, settings.seasonal_dedup_hours, now)
    result["stored"] = len(stored)
    return result
