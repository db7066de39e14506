"""
Resolves a watched departure into concrete scheduled trips.

A watch entry names its stops loosely ("Penn Station", "mineola") and gives a
clock time.  Matching works in two steps:
  1. find_stops() turns each name into a set of stop_ids — an exact
     (case-insensitive) name hit wins, otherwise every stop whose name
     contains the query is used.
  2. find_matching_trips() scans every trip for a source stop departing
     within DEPARTURE_TOLERANCE_SECONDS of the target, followed later in the
     same trip by a destination stop, on a service active that day.

All times are seconds past service-day midnight, so a GTFS "25:10:00"
compares correctly against a target expressed the same way.
"""

import logging
from datetime import date

from config import DEPARTURE_TOLERANCE_SECONDS
from schedule.index import ScheduleIndex
from schedule.models import MatchedTrip, Stop

logger = logging.getLogger(__name__)


class NoStopsFoundError(ValueError):
    """No stop name matches the query."""

    def __init__(self, query: str) -> None:
        super().__init__(f'No stops found for "{query}"')
        self.query = query


def hms_to_seconds(hms: str) -> int:
    """
    Convert HH:MM[:SS] (HH may exceed 23) to integer seconds past midnight.

    Raises ValueError on malformed input.
    """
    parts = hms.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time {hms!r}; expected HH:MM or HH:MM:SS")
    h, m = int(parts[0]), int(parts[1])
    s = int(parts[2]) if len(parts) == 3 else 0
    return h * 3600 + m * 60 + s


def find_stops(query: str, index: ScheduleIndex) -> list[Stop]:
    """Stops whose name equals query, or failing that contains it (case-insensitive)."""
    q = query.strip().lower()
    exact = index.stops_by_name.get(q)
    if exact:
        return list(exact)

    stops = [
        stop
        for name, group in index.stops_by_name.items()
        if q in name
        for stop in group
    ]
    if not stops:
        raise NoStopsFoundError(query)
    return stops


def find_matching_trips(
    source: str,
    destination: str,
    departure_seconds: int,
    service_date: date,
    index: ScheduleIndex,
    tolerance_seconds: int = DEPARTURE_TOLERANCE_SECONDS,
) -> list[MatchedTrip]:
    """
    Return every trip leg from source to destination departing near
    departure_seconds on service_date.

    Raises:
        NoStopsFoundError: If source or destination matches no stop name.
    """
    src_ids = {s.stop_id for s in find_stops(source, index)}
    dst_ids = {s.stop_id for s in find_stops(destination, index)}

    results: list[MatchedTrip] = []
    for trip_id, stop_times in index.stop_times_by_trip.items():
        src_pos = next(
            (i for i, st in enumerate(stop_times) if st.stop_id in src_ids), None
        )
        if src_pos is None:
            continue
        src_st = stop_times[src_pos]
        try:
            scheduled = hms_to_seconds(src_st.departure_time)
        except ValueError:
            logger.debug("Trip %s has unparseable departure %r.", trip_id, src_st.departure_time)
            continue
        if abs(scheduled - departure_seconds) > tolerance_seconds:
            continue

        dst_st = next(
            (st for st in stop_times[src_pos + 1:] if st.stop_id in dst_ids), None
        )
        if dst_st is None:
            continue

        trip = index.trips_by_id.get(trip_id)
        if trip is None or not index.is_service_active(trip.service_id, service_date):
            continue

        results.append(MatchedTrip(
            trip_id=trip_id,
            origin_stop_id=src_st.stop_id,
            destination_stop_id=dst_st.stop_id,
            origin_name=index.stop_name(src_st.stop_id, source),
            destination_name=index.stop_name(dst_st.stop_id, destination),
            scheduled_departure=src_st.departure_time,
            scheduled_arrival=dst_st.arrival_time,
        ))

    logger.debug(
        "Matched %d trip(s) %s → %s near %ds on %s.",
        len(results), source, destination, departure_seconds, service_date,
    )
    return results
