"""Tests for the native-habitat weather poller."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from orchid_climate.models.collection import OrchidModel
from orchid_climate.models.habitat_weather import HabitatWeatherModel, HabitatWeatherSummaryModel
from orchid_climate.services.habitat_poller import (
    distinct_native_coordinates,
    poll_habitat_weather,
    round_coordinate,
)


def _orchid(name, lat=None, lon=None):
    return OrchidModel(owner="alice", name=name, native_latitude=lat, native_longitude=lon)


def run_poll(session_factory, handler):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await poll_habitat_weather(session_factory, client, delay_ms=0)
    return asyncio.run(go())


class TestDistinctCoordinates:
    def test_rounded_and_deduplicated(self, session_factory):
        db = session_factory()
        db.add_all([
            _orchid("Phal A", 1.35211, 103.81984),
            _orchid("Phal B", 1.349, 103.8201),
            _orchid("Dendrobium", -6.2088, 106.8456),
            _orchid("Hybrid"),
            _orchid("Half", 10.0, None),
        ])
        db.commit()
        db.close()

        assert distinct_native_coordinates(session_factory) == [
            (-6.21, 106.85),
            (1.35, 103.82),
        ]

    def test_halves_round_away_from_zero(self, session_factory):
        db = session_factory()
        db.add(_orchid("Edge", 0.125, -0.375))
        db.commit()
        db.close()

        assert distinct_native_coordinates(session_factory) == [(0.13, -0.38)]

    def test_round_coordinate(self):
        assert round_coordinate(0.125) == 0.13
        assert round_coordinate(-0.375) == -0.38
        assert round_coordinate(1.35211) == 1.35
        assert round_coordinate(-6.2088) == -6.21


class TestPollHabitatWeather:
    def test_one_call_per_coordinate(self, session_factory):
        db = session_factory()
        db.add_all([
            _orchid("A", 1.35211, 103.81984),
            _orchid("B", 1.349, 103.8201),
            _orchid("C", -6.2088, 106.8456),
        ])
        db.commit()
        db.close()

        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append((request.url.params["latitude"], request.url.params["longitude"]))
            return httpx.Response(200, json={"current": {
                "temperature_2m": 27.0, "relative_humidity_2m": 84, "precipitation": 0.4,
            }})

        result = run_poll(session_factory, handler)

        assert sorted(requested) == [("-6.21", "106.85"), ("1.35", "103.82")]
        assert result["coordinates"] == 2
        assert result["readings_stored"] == 2
        assert result["failures"] == 0

        db = session_factory()
        rows = db.query(HabitatWeatherModel).all()
        assert {(r.latitude, r.longitude) for r in rows} == {(1.35, 103.82), (-6.21, 106.85)}
        assert all(r.precipitation == 0.4 for r in rows)
        db.close()

    def test_failure_skips_coordinate(self, session_factory):
        db = session_factory()
        db.add_all([_orchid("A", 1.0, 2.0), _orchid("B", 3.0, 4.0)])
        db.commit()
        db.close()

        def handler(request):
            if request.url.params["latitude"] == "1.0":
                return httpx.Response(429, text="rate limited")
            return httpx.Response(200, json={"current": {
                "temperature_2m": 20.0, "relative_humidity_2m": 70, "precipitation": 0.0,
            }})

        result = run_poll(session_factory, handler)

        assert result["readings_stored"] == 1
        assert result["failures"] == 1

    def test_compaction_runs_after_loop(self, session_factory):
        db = session_factory()
        old = datetime.now(timezone.utc) - timedelta(days=10)
        db.add(HabitatWeatherModel(
            latitude=1.0, longitude=2.0, temperature=25.0, humidity=80.0,
            precipitation=1.0, recorded_at=old,
        ))
        db.commit()
        db.close()

        def handler(request):
            raise AssertionError("no orchids, no requests")

        result = run_poll(session_factory, handler)

        assert result["coordinates"] == 0
        assert result["compaction"]["daily"] == 1
        db = session_factory()
        assert db.query(HabitatWeatherModel).count() == 0
        assert db.query(HabitatWeatherSummaryModel).count() == 1
        db.close()

    def test_unexpected_error_does_not_stop_pass(self, session_factory):
        db = session_factory()
        db.add_all([_orchid("A", 1.0, 2.0), _orchid("B", 3.0, 4.0)])
        old = datetime.now(timezone.utc) - timedelta(days=10)
        db.add(HabitatWeatherModel(
            latitude=5.0, longitude=6.0, temperature=25.0, humidity=80.0,
            precipitation=1.0, recorded_at=old,
        ))
        db.commit()
        db.close()

        def handler(request):
            if request.url.params["latitude"] == "1.0":
                raise ValueError("transport blew up")
            return httpx.Response(200, json={"current": {
                "temperature_2m": 20.0, "relative_humidity_2m": 70, "precipitation": 0.0,
            }})

        result = run_poll(session_factory, handler)

        assert result["readings_stored"] == 1
        assert result["failures"] == 1
        assert result["compaction"]["daily"] == 1
