"""Tests for zone climate snapshots."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from orchid_climate.models.climate_reading import ClimateReadingModel
from orchid_climate.models.collection import GrowingZoneModel, LOCATION_OUTDOOR
from orchid_climate.services.calculations import calculate_vpd
from orchid_climate.services.snapshot import (
    DataQuality,
    build_snapshot,
    data_quality_from_age,
    load_zone_readings,
    snapshots_by_zone_name,
)

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@dataclass
class Reading:
    temperature: float
    humidity: float
    recorded_at: datetime
    vpd: Optional[float] = None
    precipitation: Optional[float] = None


class TestDataQuality:
    def test_fresh_under_six_hours(self):
        assert data_quality_from_age(NOW - timedelta(hours=5, minutes=59), NOW) == DataQuality.FRESH

    def test_stale_at_exactly_six_hours(self):
        assert data_quality_from_age(NOW - timedelta(hours=6), NOW) == DataQuality.STALE

    def test_stale_at_exactly_48_hours(self):
        assert data_quality_from_age(NOW - timedelta(hours=48), NOW) == DataQuality.STALE

    def test_partial_hour_truncates(self):
        """48h59m is still 48 whole hours."""
        assert data_quality_from_age(NOW - timedelta(hours=48, minutes=59), NOW) == DataQuality.STALE

    def test_unavailable_after_48_hours(self):
        assert data_quality_from_age(NOW - timedelta(hours=49), NOW) == DataQuality.UNAVAILABLE

    def test_naive_datetime_treated_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert data_quality_from_age(naive, NOW) == DataQuality.FRESH


class TestBuildSnapshot:
    def test_no_readings_no_snapshot(self):
        assert build_snapshot("Shelf", [], is_outdoor=False, now=NOW) is None

    def test_means(self):
        readings = [
            Reading(20.0, 50.0, NOW - timedelta(hours=2), vpd=1.0),
            Reading(24.0, 60.0, NOW - timedelta(hours=1), vpd=1.4),
        ]
        snap = build_snapshot("Shelf", readings, is_outdoor=False, now=NOW)
        assert snap.avg_temp_c == 22.0
        assert snap.avg_humidity_pct == 55.0
        assert snap.avg_vpd_kpa == pytest.approx(1.2)
        assert snap.reading_count == 2
        assert snap.newest_reading_at == NOW - timedelta(hours=1)
        assert snap.quality == DataQuality.FRESH

    def test_vpd_computed_when_readings_lack_it(self):
        readings = [
            Reading(20.0, 50.0, NOW - timedelta(hours=2)),
            Reading(24.0, 60.0, NOW - timedelta(hours=1)),
        ]
        snap = build_snapshot("Shelf", readings, is_outdoor=False, now=NOW)
        assert snap.avg_vpd_kpa == pytest.approx(calculate_vpd(22.0, 55.0))

    def test_vpd_mean_ignores_missing(self):
        readings = [
            Reading(20.0, 50.0, NOW, vpd=0.8),
            Reading(24.0, 60.0, NOW),
        ]
        snap = build_snapshot("Shelf", readings, is_outdoor=False, now=NOW)
        assert snap.avg_vpd_kpa == pytest.approx(0.8)

    def test_precipitation_summed_outdoors_only(self):
        readings = [
            Reading(20.0, 80.0, NOW, precipitation=2.5),
            Reading(20.0, 80.0, NOW, precipitation=None),
            Reading(20.0, 80.0, NOW, precipitation=4.0),
        ]
        outdoor = build_snapshot("Patio", readings, is_outdoor=True, now=NOW)
        indoor = build_snapshot("Shelf", readings, is_outdoor=False, now=NOW)
        assert outdoor.precipitation_48h_mm == pytest.approx(6.5)
        assert indoor.precipitation_48h_mm is None

    def test_outdoor_without_precipitation_values(self):
        snap = build_snapshot("Patio", [Reading(20.0, 80.0, NOW)], is_outdoor=True, now=NOW)
        assert snap.precipitation_48h_mm is None


def _add_reading(db, zone, temp, hum, at, precip=None):
    db.add(ClimateReadingModel(
        zone_id=zone.id, zone_name=zone.name, temperature=temp, humidity=hum,
        vpd=None, precipitation=precip, source="tempest", recorded_at=at,
    ))


class TestZoneSnapshots:
    def test_window_excludes_old_readings(self, db):
        zone = GrowingZoneModel(owner="alice", name="Shelf")
        db.add(zone)
        db.flush()
        _add_reading(db, zone, 10.0, 40.0, NOW - timedelta(hours=60))
        _add_reading(db, zone, 22.0, 55.0, NOW - timedelta(hours=2))
        db.commit()

        readings = load_zone_readings(db, zone.id, NOW)
        assert len(readings) == 1
        assert readings[0].temperature == 22.0

    def test_silent_zone_surfaces_as_unavailable(self, db):
        zone = GrowingZoneModel(owner="alice", name="Shelf")
        db.add(zone)
        db.flush()
        _add_reading(db, zone, 18.0, 50.0, NOW - timedelta(days=5))
        _add_reading(db, zone, 19.0, 51.0, NOW - timedelta(days=4))
        db.commit()

        snaps = snapshots_by_zone_name(db, now=NOW)
        snap = snaps[("alice", "Shelf")]
        assert snap.reading_count == 1
        assert snap.avg_temp_c == 19.0
        assert snap.quality == DataQuality.UNAVAILABLE

    def test_keyed_by_owner_and_name(self, db):
        mine = GrowingZoneModel(owner="alice", name="Patio", location_type=LOCATION_OUTDOOR)
        theirs = GrowingZoneModel(owner="bob", name="Patio")
        empty = GrowingZoneModel(owner="bob", name="Greenhouse")
        db.add_all([mine, theirs, empty])
        db.flush()
        _add_reading(db, mine, 25.0, 70.0, NOW - timedelta(hours=1), precip=3.0)
        _add_reading(db, theirs, 15.0, 40.0, NOW - timedelta(hours=1), precip=3.0)
        db.commit()

        snaps = snapshots_by_zone_name(db, now=NOW)
        assert set(snaps) == {("alice", "Patio"), ("bob", "Patio")}
        assert snaps[("alice", "Patio")].is_outdoor is True
        assert snaps[("alice", "Patio")].precipitation_48h_mm == 3.0
        assert snaps[("bob", "Patio")].precipitation_48h_mm is None

        only_bob = snapshots_by_zone_name(db, owner="bob", now=NOW)
        assert set(only_bob) == {("bob", "Patio")}
