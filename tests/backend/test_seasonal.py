"""Tests for seasonal phases, effective watering frequency and transition alerts."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from orchid_climate.models.alert import AlertModel
from orchid_climate.models.collection import OrchidModel, UserPreferenceModel
from orchid_climate.services.seasonal import (
    Hemisphere,
    SeasonalPhase,
    current_phase,
    effective_water_frequency,
    month_in_range,
)
from orchid_climate.services.seasonal_alerts import check_seasonal_alerts, seasonal_alerts_for


def at_month(month: int) -> datetime:
    return datetime(2026, month, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class Plant:
    id: int = 1
    owner: str = "alice"
    name: str = "Dendrobium"
    water_frequency_days: int = 7
    rest_start_month: Optional[int] = None
    rest_end_month: Optional[int] = None
    bloom_start_month: Optional[int] = None
    bloom_end_month: Optional[int] = None
    rest_water_multiplier: Optional[float] = None
    active_water_multiplier: Optional[float] = None


class TestHemisphere:
    def test_from_code(self):
        assert Hemisphere.from_code("S") == Hemisphere.SOUTHERN
        assert Hemisphere.from_code("N") == Hemisphere.NORTHERN
        assert Hemisphere.from_code("") == Hemisphere.NORTHERN
        assert Hemisphere.from_code(None) == Hemisphere.NORTHERN

    @pytest.mark.parametrize("month,expected", [(1, 7), (6, 12), (7, 1), (11, 5), (12, 6)])
    def test_southern_shift(self, month, expected):
        assert Hemisphere.SOUTHERN.adjust_month(month) == expected

    def test_northern_unchanged(self):
        assert [Hemisphere.NORTHERN.adjust_month(m) for m in range(1, 13)] == list(range(1, 13))


class TestMonthInRange:
    def test_simple_range(self):
        assert month_in_range(4, 3, 5)
        assert not month_in_range(6, 3, 5)

    def test_wraps_year_end(self):
        assert month_in_range(12, 11, 2)
        assert month_in_range(1, 11, 2)
        assert not month_in_range(6, 11, 2)


class TestCurrentPhase:
    def test_no_seasonal_data(self):
        assert current_phase(Plant(), Hemisphere.NORTHERN, at_month(1)) == SeasonalPhase.UNKNOWN

    def test_rest(self):
        plant = Plant(rest_start_month=11, rest_end_month=2)
        assert current_phase(plant, Hemisphere.NORTHERN, at_month(1)) == SeasonalPhase.REST
        assert current_phase(plant, Hemisphere.NORTHERN, at_month(6)) == SeasonalPhase.ACTIVE

    def test_bloom_wins_over_rest(self):
        plant = Plant(rest_start_month=1, rest_end_month=4, bloom_start_month=3, bloom_end_month=5)
        assert current_phase(plant, Hemisphere.NORTHERN, at_month(3)) == SeasonalPhase.BLOOMING

    def test_southern_rest_is_shifted(self):
        plant = Plant(rest_start_month=11, rest_end_month=2)
        assert current_phase(plant, Hemisphere.SOUTHERN, at_month(6)) == SeasonalPhase.REST
        assert current_phase(plant, Hemisphere.SOUTHERN, at_month(1)) == SeasonalPhase.ACTIVE


class TestEffectiveWaterFrequency:
    def test_rest_multiplier_stretches(self):
        plant = Plant(rest_start_month=11, rest_end_month=2, rest_water_multiplier=0.5)
        assert effective_water_frequency(plant, Hemisphere.NORTHERN, at_month(12)) == 14

    def test_active_multiplier_shrinks(self):
        plant = Plant(rest_start_month=11, rest_end_month=2, active_water_multiplier=2.0)
        assert effective_water_frequency(plant, Hemisphere.NORTHERN, at_month(7)) == 4

    def test_never_below_one(self):
        plant = Plant(water_frequency_days=1, rest_start_month=1, rest_end_month=12,
                      rest_water_multiplier=10.0)
        assert effective_water_frequency(plant, Hemisphere.NORTHERN, at_month(5)) == 1

    @pytest.mark.parametrize("multiplier", [None, 0.0, -1.0])
    def test_missing_or_invalid_multiplier(self, multiplier):
        plant = Plant(rest_start_month=11, rest_end_month=2, rest_water_multiplier=multiplier)
        assert effective_water_frequency(plant, Hemisphere.NORTHERN, at_month(1)) == 7

    def test_unknown_phase_uses_base(self):
        plant = Plant(rest_water_multiplier=0.5, active_water_multiplier=2.0)
        assert effective_water_frequency(plant, Hemisphere.NORTHERN, at_month(1)) == 7


class TestSeasonalAlertsFor:
    def test_rest_start_this_month(self):
        alerts = seasonal_alerts_for(Plant(rest_start_month=11), Hemisphere.NORTHERN, at_month(11))
        assert [(a.alert_type, a.message) for a in alerts] == [
            ("seasonal_rest_start", "Dendrobium: Rest period begins this month"),
        ]
        assert alerts[0].severity == "info"

    def test_bloom_start_next_month(self):
        alerts = seasonal_alerts_for(Plant(bloom_start_month=4), Hemisphere.NORTHERN, at_month(3))
        assert alerts[0].message == "Dendrobium: Bloom season begins next month"

    def test_end_transition_is_month_after(self):
        """A rest period through February ends in March."""
        plant = Plant(rest_start_month=11, rest_end_month=2)
        assert seasonal_alerts_for(plant, Hemisphere.NORTHERN, at_month(4)) == []
        alerts = seasonal_alerts_for(plant, Hemisphere.NORTHERN, at_month(3))
        assert [a.message for a in alerts] == ["Dendrobium: Rest period ends this month"]

    def test_december_end_wraps_to_january(self):
        alerts = seasonal_alerts_for(Plant(bloom_end_month=12), Hemisphere.NORTHERN, at_month(12))
        assert alerts[0].message == "Dendrobium: Bloom season ends next month"

    def test_southern_hemisphere(self):
        alerts = seasonal_alerts_for(Plant(rest_start_month=11), Hemisphere.SOUTHERN, at_month(5))
        assert alerts[0].message == "Dendrobium: Rest period begins this month"


class TestCheckSeasonalAlerts:
    def test_uses_owner_hemisphere_and_dedups(self, session_factory):
        db = session_factory()
        db.add_all([
            OrchidModel(owner="alice", name="North Phal", rest_start_month=11),
            OrchidModel(owner="bruno", name="South Phal", rest_start_month=11),
            OrchidModel(owner="alice", name="Plain"),
            UserPreferenceModel(owner="bruno", hemisphere="S"),
        ])
        db.commit()
        db.close()

        now = at_month(5)
        first = check_seasonal_alerts(session_factory, now)
        assert first == {"generated": 1, "stored": 1}

        db = session_factory()
        alert = db.query(AlertModel).one()
        assert alert.owner == "bruno"
        assert alert.message == "South Phal: Rest period begins this month"
        db.close()

        again = check_seasonal_alerts(session_factory, now + timedelta(hours=23))
        assert again == {"generated": 1, "stored": 0}

        later = check_seasonal_alerts(session_factory, now + timedelta(hours=25))
        assert later["stored"] == 1
