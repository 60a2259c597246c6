"""Seasonal phase helpers.

Orchid rest and bloom months are stored in Northern Hemisphere terms.
Growers in the Southern Hemisphere see every month shifted by six.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .estimation import round_half_up


class Hemisphere(str, Enum):
    NORTHERN = "N"
    SOUTHERN = "S"

    @classmethod
    def from_code(cls, code: Optional[str]) -> "Hemisphere":
        return cls.SOUTHERN if code == "S" else cls.NORTHERN

    def adjust_month(self, month: int) -> int:
        if self is Hemisphere.SOUTHERN:
            return ((month + 5) % 12) + 1
        return month


class SeasonalPhase(str, Enum):
    REST = "Rest"
    ACTIVE = "Active"
    BLOOMING = "Blooming"
    UNKNOWN = "Unknown"


def month_in_range(month: int, start: int, end: int) -> bool:
    """Inclusive month range; wraps the year end when start > end (Nov..Feb)."""
    if start <= end:
        return start <= month <= end
    return month >= start or month <= end


def has_seasonal_data(orchid) -> bool:
    return orchid.rest_start_month is not None or orchid.bloom_start_month is not None


def current_phase(orchid, hemisphere: Hemisphere, now: Optional[datetime] = None) -> SeasonalPhase:
    """Bloom wins over rest; seasonal data outside both ranges means Active."""
    month = (now or datetime.now(timezone.utc)).month

    if orchid.bloom_start_month is not None and orchid.bloom_end_month is not None:
        start = hemisphere.adjust_month(orchid.bloom_start_month)
        end = hemisphere.adjust_month(orchid.bloom_end_month)
        if month_in_range(month, start, end):
            return SeasonalPhase.BLOOMING

    if orchid.rest_start_month is not None and orchid.rest_end_month is not None:
        start = hemisphere.adjust_month(orchid.rest_start_month)
        end = hemisphere.adjust_month(orchid.rest_end_month)
        if month_in_range(month, start, end):
            return SeasonalPhase.REST

    if has_seasonal_data(orchid):
        return SeasonalPhase.ACTIVE
    return SeasonalPhase.UNKNOWN


def effective_water_frequency(orchid, hemisphere: Hemisphere, now: Optional[datetime] = None) -> int:
    """water_frequency_days divided by the multiplier for the current phase."""
    base = orchid.water_frequency_days
    phase = current_phase(orchid, hemisphere, now)
    if phase == SeasonalPhase.REST:
        multiplier = orchid.rest_water_multiplier
    elif phase in (SeasonalPhase.ACTIVE, SeasonalPhase.BLOOMING):
        multiplier = orchid.active_water_multiplier
    else:
        multiplier = None

    if multiplier is not None and multiplier > 0:
        return max(round_half_up(base / multiplier), 1)
    return base
