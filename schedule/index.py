"""
Read-only index over one GTFS static snapshot.

Built once per snapshot by ingestion.gtfs_static.load_static_gtfs() and
never mutated afterwards; a fresh snapshot produces a fresh index.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from schedule.models import CalendarException, CalendarService, Stop, StopTime, Trip


@dataclass(frozen=True)
class ScheduleIndex:
    stops_by_name: dict[str, list[Stop]]                  # lower-cased stop_name → stops
    stops_by_id: dict[str, Stop]
    stop_times_by_trip: dict[str, list[StopTime]]         # trip_id → ordered by stop_sequence
    trips_by_id: dict[str, Trip]
    calendar_by_service: dict[str, CalendarService] = field(default_factory=dict)
    exceptions_by_service: dict[str, list[CalendarException]] = field(default_factory=dict)
    loaded_at: datetime = field(default_factory=datetime.now)

    def is_service_active(self, service_id: str, on: date) -> bool:
        """
        Whether service_id runs on the given date.

        An exact-date calendar_dates entry is authoritative; otherwise the
        date must fall inside the calendar range (inclusive) on a weekday
        the service runs.
        """
        for exc in self.exceptions_by_service.get(service_id, ()):
            if exc.date == on:
                return exc.is_added

        cal = self.calendar_by_service.get(service_id)
        if cal is None:
            return False
        if on < cal.start_date or on > cal.end_date:
            return False
        return cal.weekdays[on.weekday()]

    def stop_name(self, stop_id: str, default: str = "") -> str:
        stop = self.stops_by_id.get(stop_id)
        return stop.stop_name if stop else default

    def summary(self) -> dict[str, int]:
        return {
            "stops": len(self.stops_by_id),
            "trips": len(self.trips_by_id),
            "stop_times": sum(len(v) for v in self.stop_times_by_trip.values()),
            "services": len(self.calendar_by_service),
        }
