"""Climate-aware watering interval estimation.

An orchid's ``water_frequency_days`` assumes a standard indoor room
(22°C, 55% RH, VPD ≈ 1.19 kPa). This module stretches or shrinks that
interval with five independent multiplicative factors:

  vpd         - evaporative demand relative to the reference VPD
  cold stress - roots take up less water below 18°C
  medium      - how long the potting medium holds moisture
  light       - brighter placement dries the plant faster
  rain        - recent rainfall on outdoor plants

Everything here is pure: no I/O, no clock.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .snapshot import ClimateSnapshot, DataQuality

# Reference conditions assumed by water_frequency_days
REFERENCE_TEMP_C = 22.0
REFERENCE_HUMIDITY_PCT = 55.0
REFERENCE_VPD_KPA = 1.19

VPD_FACTOR_MIN = 0.4
VPD_FACTOR_MAX = 2.5

COLD_STRESS_WARM_C = 18.0
COLD_STRESS_COLD_C = 10.0
COLD_STRESS_MAX = 1.8

MAX_STRETCH = 3  # adjusted interval never exceeds base × 3


class PotMedium(str, Enum):
    BARK = "Bark"
    SPHAGNUM_MOSS = "SphagnumMoss"
    LECA = "Leca"
    INORGANIC = "Inorganic"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["PotMedium"]:
        """Accept stored free text such as "Sphagnum Moss" or "leca"."""
        if value is None or not value.strip():
            return None
        key = value.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.UNKNOWN


class LightRequirement(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LightRequirement":
        words = (value or "").split()
        if words:
            for member in cls:
                if member.value.lower() == words[0].lower():
                    return member
        return cls.MEDIUM


MEDIUM_FACTORS = {
    PotMedium.BARK: 0.85,
    PotMedium.SPHAGNUM_MOSS: 1.3,
    PotMedium.LECA: 1.4,
    PotMedium.INORGANIC: 1.0,
    PotMedium.UNKNOWN: 1.0,
}

LIGHT_FACTORS = {
    LightRequirement.LOW: 1.15,
    LightRequirement.MEDIUM: 1.0,
    LightRequirement.HIGH: 0.85,
}

# PPFD (µmol/m²/s) -> light factor control points
PAR_CONTROL_POINTS = [
    (50.0, 1.20),
    (100.0, 1.10),
    (200.0, 1.00),
    (400.0, 0.85),
    (800.0, 0.70),
]

# 48h precipitation (mm, strictly greater than) -> rain factor
RAIN_TIERS = [
    (30.0, 2.5),
    (15.0, 2.0),
    (5.0, 1.6),
    (1.0, 1.3),
]


@dataclass
class FactorBreakdown:
    vpd_factor: float
    cold_stress_factor: float
    medium_factor: float
    light_factor: float
    rain_factor: float

    @property
    def combined(self) -> float:
        return (
            self.vpd_factor
            * self.cold_stress_factor
            * self.medium_factor
            * self.light_factor
            * self.rain_factor
        )


@dataclass
class WateringEstimate:
    adjusted_days: int
    base_days: int
    quality: DataQuality
    climate_active: bool
    factors: Optional[FactorBreakdown] = None


# --- Factors ---

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (8.5 -> 9, not 8)."""
    return int(math.floor(value + 0.5))


def vpd_factor(avg_vpd_kpa: float) -> float:
    if avg_vpd_kpa <= 0.0:
        return VPD_FACTOR_MAX  # saturated air, maximum extension
    return min(max(REFERENCE_VPD_KPA / avg_vpd_kpa, VPD_FACTOR_MIN), VPD_FACTOR_MAX)


def cold_stress_factor(avg_temp_c: float) -> float:
    if avg_temp_c >= COLD_STRESS_WARM_C:
        return 1.0
    if avg_temp_c <= COLD_STRESS_COLD_C:
        return COLD_STRESS_MAX
    span = COLD_STRESS_WARM_C - COLD_STRESS_COLD_C
    return 1.0 + (COLD_STRESS_WARM_C - avg_temp_c) * ((COLD_STRESS_MAX - 1.0) / span)


def medium_factor(pot_medium: Optional[PotMedium]) -> float:
    if pot_medium is None:
        return 1.0
    return MEDIUM_FACTORS.get(pot_medium, 1.0)


def piecewise_linear(x: float, points: list[tuple[float, float]]) -> float:
    """Interpolate y at x over sorted control points, flat beyond either end."""
    if x <= points[0][0]:
        return points[0][1]
    if x >= points[-1][0]:
        return points[-1][1]
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        if x0 <= x <= x1:
            t = (x - x0) / (x1 - x0)
            return y0 + t * (y1 - y0)
    return points[-1][1]


def light_factor(light_requirement: LightRequirement, par_ppfd: Optional[float] = None) -> float:
    """Measured PAR wins over the categorical light requirement."""
    if par_ppfd is not None:
        return piecewise_linear(par_ppfd, PAR_CONTROL_POINTS)
    return LIGHT_FACTORS.get(light_requirement, 1.0)


def rain_factor(precipitation_48h_mm: Optional[float], is_outdoor: bool) -> float:
    if not is_outdoor or precipitation_48h_mm is None:
        return 1.0
    for threshold, factor in RAIN_TIERS:
        if precipitation_48h_mm > threshold:
            return factor
    return 1.0


# --- Main algorithm ---

def climate_adjusted_frequency(
    base_days: int,
    climate: Optional[ClimateSnapshot],
    pot_medium: Optional[PotMedium] = None,
    light_requirement: LightRequirement = LightRequirement.MEDIUM,
    par_ppfd: Optional[float] = None,
) -> WateringEstimate:
    """Adjust ``base_days`` for the zone climate.

    Without a usable snapshot (absent, or Unavailable quality) the base
    interval is returned unchanged and ``climate_active`` is False.
    Otherwise the result is round(base × Π factors) clamped to
    [1, base × 3].
    """
    if climate is None or climate.quality == DataQuality.UNAVAILABLE:
        return WateringEstimate(
            adjusted_days=base_days,
            base_days=base_days,
            quality=DataQuality.UNAVAILABLE,
            climate_active=False,
        )

    factors = FactorBreakdown(
        vpd_factor=vpd_factor(climate.avg_vpd_kpa),
        cold_stress_factor=cold_stress_factor(climate.avg_temp_c),
        medium_factor=medium_factor(pot_medium),
        light_factor=light_factor(light_requirement, par_ppfd),
        rain_factor=rain_factor(climate.precipitation_48h_mm, climate.is_outdoor),
    )

    adjusted = round_half_up(base_days * factors.combined)
    adjusted = min(max(adjusted, 1), base_days * MAX_STRETCH)

    return WateringEstimate(
        adjusted_days=adjusted,
        base_days=base_days,
        quality=climate.quality,
        climate_active=True,
        factors=factors,
    )
