"""
In-memory GTFS static records used by the schedule index and trip matcher.

GTFS time fields (arrival_time, departure_time) are kept as HH:MM:SS strings
because GTFS allows values >= 24:00:00 for trips crossing midnight.
Matching code converts to integer seconds-past-midnight when needed.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Stop:
    stop_id: str
    stop_name: str


@dataclass(frozen=True)
class StopTime:
    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str    # HH:MM:SS (may exceed 24:00:00)
    departure_time: str  # HH:MM:SS (may exceed 24:00:00)


@dataclass(frozen=True)
class Trip:
    trip_id: str
    service_id: str


@dataclass(frozen=True)
class CalendarService:
    service_id: str
    weekdays: tuple[bool, ...]  # Monday .. Sunday, indexed by date.weekday()
    start_date: date
    end_date: date


@dataclass(frozen=True)
class CalendarException:
    service_id: str
    date: date
    exception_type: int  # 1 = service added, 2 = service removed

    @property
    def is_added(self) -> bool:
        return self.exception_type == 1


@dataclass(frozen=True)
class MatchedTrip:
    """One scheduled leg from the watched origin to the watched destination."""
    trip_id: str
    origin_stop_id: str
    destination_stop_id: str
    origin_name: str
    destination_name: str
    scheduled_departure: str  # HH:MM:SS at the origin
    scheduled_arrival: str    # HH:MM:SS at the destination
