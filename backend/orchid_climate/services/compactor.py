"""Habitat weather compaction: raw -> daily -> weekly -> monthly.

Keeps the habitat tables small while preserving long-term trends:

  raw rows older than 7 days      -> one daily summary per coordinate/day
  daily summaries older than 30d  -> one weekly summary per coordinate/ISO week
  weekly summaries older than 90d -> one monthly summary per coordinate/month

Coarser tiers combine finer ones with count-weighted means, so a day with
48 samples outweighs a day with 2. Monthly summaries are kept forever.

Each stage runs in its own transaction: the selected source rows, the
inserted summaries and the deletions commit together or not at all. A
failing stage is logged and the remaining stages still run.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.database import SessionFactory, SessionLocal, as_utc
from ..models.habitat_weather import (
    HabitatWeatherModel,
    HabitatWeatherSummaryModel,
    PERIOD_DAILY,
    PERIOD_WEEKLY,
    PERIOD_MONTHLY,
)

logger = logging.getLogger(__name__)


@dataclass
class SummaryStats:
    """Aggregates for one coordinate/period bucket."""
    avg_temperature: float
    min_temperature: float
    max_temperature: float
    avg_humidity: float
    total_precipitation: float
    sample_count: int


# --- Period floors (UTC) ---

def day_floor(dt: datetime) -> datetime:
    return as_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def week_floor(dt: datetime) -> datetime:
    """Monday 00:00 of the ISO week containing ``dt``."""
    day = day_floor(dt)
    return day - timedelta(days=day.weekday())


def month_floor(dt: datetime) -> datetime:
    return day_floor(dt).replace(day=1)


# --- Aggregation ---

def weighted_mean(pairs: Iterable[tuple[float, int]]) -> float:
    """Σ(mean·count) / Σcount.

    Falls back to a plain mean if every count is zero, which only happens
    with hand-edited rows.
    """
    pairs = list(pairs)
    total = sum(count for _, count in pairs)
    if total <= 0:
        return sum(mean for mean, _ in pairs) / len(pairs)
    return sum(mean * count for mean, count in pairs) / total


def summarize_raw(rows: list[HabitatWeatherModel]) -> SummaryStats:
    temps = [r.temperature for r in rows]
    hums = [r.humidity for r in rows]
    return SummaryStats(
        avg_temperature=sum(temps) / len(temps),
        min_temperature=min(temps),
        max_temperature=max(temps),
        avg_humidity=sum(hums) / len(hums),
        total_precipitation=sum(r.precipitation or 0.0 for r in rows),
        sample_count=len(rows),
    )


def combine_summaries(parts: list) -> SummaryStats:
    """Merge finer summaries into one coarser summary.

    ``parts`` may be SummaryStats or summary rows; both expose the same fields.
    """
    return SummaryStats(
        avg_temperature=weighted_mean((p.avg_temperature, p.sample_count) for p in parts),
        min_temperature=min(p.min_temperature for p in parts),
        max_temperature=max(p.max_temperature for p in parts),
        avg_humidity=weighted_mean((p.avg_humidity, p.sample_count) for p in parts),
        total_precipitation=sum(p.total_precipitation for p in parts),
        sample_count=sum(p.sample_count for p in parts),
    )


def _summary_row(
    lat: float, lon: float, period_type: str, period_start: datetime, stats: SummaryStats,
) -> HabitatWeatherSummaryModel:
    return HabitatWeatherSummaryModel(
        latitude=lat,
        longitude=lon,
        period_type=period_type,
        period_start=period_start,
        avg_temperature=stats.avg_temperature,
        min_temperature=stats.min_temperature,
        max_temperature=stats.max_temperature,
        avg_humidity=stats.avg_humidity,
        total_precipitation=stats.total_precipitation,
        sample_count=stats.sample_count,
    )


# --- Stages ---

def compact_raw_to_daily(db: Session, now: datetime, age: timedelta) -> int:
    """Roll raw readings older than ``age`` into daily summaries.

    Returns:
        Number of daily summaries inserted.
    """
    cutoff = now - age
    rows = (
        db.query(HabitatWeatherModel)
        .filter(HabitatWeatherModel.recorded_at < cutoff)
        .all()
    )
    if not rows:
        return 0

    groups: dict[tuple[float, float, datetime], list[HabitatWeatherModel]] = defaultdict(list)
    for row in rows:
        groups[(row.latitude, row.longitude, day_floor(row.recorded_at))].append(row)

    for (lat, lon, start), members in groups.items():
        db.add(_summary_row(lat, lon, PERIOD_DAILY, start, summarize_raw(members)))

    for row in rows:
        db.delete(row)
    return len(groups)


def compact_tier(
    db: Session,
    source_type: str,
    target_type: str,
    floor: Callable[[datetime], datetime],
    now: datetime,
    age: timedelta,
) -> int:
    """Roll ``source_type`` summaries older than ``age`` into ``target_type``.

    Returns:
        Number of ``target_type`` summaries inserted.
    """
    cutoff = now - age
    rows = (
        db.query(HabitatWeatherSummaryModel)
        .filter(HabitatWeatherSummaryModel.period_type == source_type)
        .filter(HabitatWeatherSummaryModel.period_start < cutoff)
        .all()
    )
    if not rows:
        return 0

    groups: dict[tuple[float, float, datetime], list[HabitatWeatherSummaryModel]] = defaultdict(list)
    for row in rows:
        groups[(row.latitude, row.longitude, floor(row.period_start))].append(row)

    for (lat, lon, start), members in groups.items():
        db.add(_summary_row(lat, lon, target_type, start, combine_summaries(members)))

    for row in rows:
        db.delete(row)
    return len(groups)


def _run_stage(session_factory: SessionFactory, label: str, stage: Callable[[Session], int]) -> Optional[int]:
    db = session_factory()
    try:
        inserted = stage(db)
        db.commit()
        if inserted:
            logger.info("Habitat compact: %s produced %d summaries", label, inserted)
        return inserted
    except Exception as exc:
        db.rollback()
        logger.error("Habitat compact: %s failed: %s", label, exc, exc_info=True)
        return None
    finally:
        db.close()


def compact_habitat_data(
    session_factory: SessionFactory = SessionLocal,
    now: Optional[datetime] = None,
) -> dict[str, Optional[int]]:
    """Run all three compaction stages in order.

    Returns:
        Summaries inserted per stage; None marks a stage that failed and
        was rolled back.
    """
    now = now or datetime.now(timezone.utc)
    daily_age = timedelta(days=settings.compact_daily_after_days)
    weekly_age = timedelta(days=settings.compact_weekly_after_days)
    monthly_age = timedelta(days=settings.compact_monthly_after_days)

    return {
        "daily": _run_stage(
            session_factory, "raw→daily",
            lambda db: compact_raw_to_daily(db, now, daily_age),
        ),
        "weekly": _run_stage(
            session_factory, "daily→weekly",
            lambda db: compact_tier(db, PERIOD_DAILY, PERIOD_WEEKLY, week_floor, now, weekly_age),
        ),
        "monthly": _run_stage(
            session_factory, "weekly→monthly",
            lambda db: compact_tier(db, PERIOD_WEEKLY, PERIOD_MONTHLY, month_floor, now, monthly_age),
        ),
    }
