"""
Unit tests for routing.matcher against the fixture snapshot in conftest.py.

2026-10-19 is a Monday; WKDY and NIGHT run, WKND does not.
"""

import pytest
from datetime import date

from routing.matcher import NoStopsFoundError, find_matching_trips, find_stops, hms_to_seconds

MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)


# ---------------------------------------------------------------------------
# hms_to_seconds
# ---------------------------------------------------------------------------

class TestHmsToSeconds:
    def test_normal_time(self):
        assert hms_to_seconds("08:30:00") == 8 * 3600 + 30 * 60

    def test_midnight(self):
        assert hms_to_seconds("00:00:00") == 0

    def test_over_24h(self):
        # GTFS allows times past midnight for overnight trips
        assert hms_to_seconds("25:10:00") == 25 * 3600 + 10 * 60
        assert hms_to_seconds("25:10:00") > 86400

    def test_hours_and_minutes_only(self):
        assert hms_to_seconds("08:15") == 8 * 3600 + 15 * 60

    def test_with_seconds(self):
        assert hms_to_seconds("09:05:30") == 9 * 3600 + 5 * 60 + 30

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            hms_to_seconds("not-a-time")

    def test_empty_string_raises(self):
        with pytest.raises(ValueError):
            hms_to_seconds("")


# ---------------------------------------------------------------------------
# find_stops
# ---------------------------------------------------------------------------

class TestFindStops:
    def test_exact_match_returns_whole_group(self, index):
        ids = {s.stop_id for s in find_stops("Penn Station", index)}
        assert ids == {"PENN", "PENN_B"}

    def test_exact_match_is_case_insensitive(self, index):
        ids = {s.stop_id for s in find_stops("MINEOLA", index)}
        assert ids == {"MIN"}

    def test_exact_match_not_superset(self, index):
        # "Jamaica" must not pull in other stops containing the text
        stops = find_stops("jamaica", index)
        assert [s.stop_id for s in stops] == ["JAM"]

    def test_substring_match(self, index):
        ids = {s.stop_id for s in find_stops("penn", index)}
        assert ids == {"PENN", "PENN_B"}

    def test_substring_matches_union_of_groups(self, index):
        # "ill" appears in "Hicksville" and "Forest Hills"
        ids = {s.stop_id for s in find_stops("ill", index)}
        assert ids == {"HIC", "FHL"}

    def test_no_match_raises(self, index):
        with pytest.raises(NoStopsFoundError, match="Ronkonkoma"):
            find_stops("Ronkonkoma", index)

    def test_no_match_is_value_error(self, index):
        with pytest.raises(ValueError):
            find_stops("Montauk", index)


# ---------------------------------------------------------------------------
# find_matching_trips
# ---------------------------------------------------------------------------

class TestFindMatchingTrips:
    def test_exact_departure_matches(self, index):
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:15"), MONDAY, index)
        assert [t.trip_id for t in trips] == ["T815"]

    def test_matched_trip_fields(self, index):
        (trip,) = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:15"), MONDAY, index)
        assert trip.origin_stop_id == "PENN"
        assert trip.destination_stop_id == "MIN"
        assert trip.origin_name == "Penn Station"
        assert trip.destination_name == "Mineola"
        assert trip.scheduled_departure == "08:15:00"
        assert trip.scheduled_arrival == "08:50:00"

    def test_within_tolerance(self, index):
        # 08:20 is exactly 300s after T815's departure
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:20"), MONDAY, index)
        assert [t.trip_id for t in trips] == ["T815"]

    def test_outside_tolerance(self, index):
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:30"), MONDAY, index)
        assert trips == []

    def test_destination_must_follow_origin(self, index):
        # TREV visits Mineola at 08:15 but then goes *to* Penn Station
        trips = find_matching_trips("Mineola", "Penn Station", hms_to_seconds("08:15"), MONDAY, index)
        assert [t.trip_id for t in trips] == ["TREV"]
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:50"), MONDAY, index)
        assert "TREV" not in {t.trip_id for t in trips}

    def test_intermediate_destination(self, index):
        trips = find_matching_trips("Penn Station", "Jamaica", hms_to_seconds("08:15"), MONDAY, index)
        (trip,) = trips
        assert trip.destination_stop_id == "JAM"
        assert trip.scheduled_arrival == "08:35:00"

    def test_inactive_service_excluded(self, index):
        # TSAT (08:17 from PENN_B) runs on weekends only
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:15"), MONDAY, index)
        assert "TSAT" not in {t.trip_id for t in trips}

    def test_multiple_matches_returned(self, index):
        # Saturday: WKDY off, WKND on; Wednesday 2026-10-21 both run
        sat = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:15"), SATURDAY, index)
        assert [t.trip_id for t in sat] == ["TSAT"]
        wed = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("08:15"), date(2026, 10, 21), index)
        assert {t.trip_id for t in wed} == {"T815", "TSAT"}

    def test_post_midnight_times(self, index):
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("25:10"), MONDAY, index)
        assert [t.trip_id for t in trips] == ["T2510"]
        assert trips[0].scheduled_departure == "25:10:00"

    def test_post_midnight_not_matched_by_wall_clock(self, index):
        # 01:10 as a plain clock time is a different service-day offset
        trips = find_matching_trips("Penn Station", "Mineola", hms_to_seconds("01:10"), MONDAY, index)
        assert trips == []

    def test_unknown_source_raises(self, index):
        with pytest.raises(NoStopsFoundError):
            find_matching_trips("Nowhere", "Mineola", 0, MONDAY, index)

    def test_unknown_destination_raises(self, index):
        with pytest.raises(NoStopsFoundError):
            find_matching_trips("Penn Station", "Nowhere", 0, MONDAY, index)
