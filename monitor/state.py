"""
Process-lifetime monitoring state shared by the poll loop and the control API.

snooze_until and skip_dates are written by HTTP handlers while a poll cycle
may be reading them, so both go through self._lock.  last_checked_at and
last_message are only touched by the poll loop itself.
"""

import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

# (source, destination, departure_time, YYYY-MM-DD)
DepartureKey = tuple[str, str, str, str]


@dataclass
class MonitorState:
    snooze_until: datetime | None = None
    skip_dates: set[date] = field(default_factory=set)
    last_checked_at: dict[DepartureKey, datetime] = field(default_factory=dict)
    last_message: dict[DepartureKey, str] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # -- control surface writes -------------------------------------------

    def snooze(self, now: datetime, hours: int = 24) -> datetime:
        with self._lock:
            self.snooze_until = now + timedelta(hours=hours)
            return self.snooze_until

    def skip(self, day: date) -> date:
        with self._lock:
            self.skip_dates.add(day)
            return day

    # -- poll loop reads --------------------------------------------------

    def gate_reason(self, now: datetime) -> str | None:
        """Why checks are suppressed at `now`, or None when they may run."""
        with self._lock:
            if self.snooze_until is not None and now < self.snooze_until:
                return f"[SNOOZE] Checks snoozed until {self.snooze_until:%Y-%m-%d %H:%M}."
            if now.date() in self.skip_dates:
                return f"[SKIP] Checks skipped for {now.date().isoformat()}."
        return None

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "snooze_until": self.snooze_until.isoformat() if self.snooze_until else None,
                "skip_dates": sorted(d.isoformat() for d in self.skip_dates),
                "tracked_departures": len(self.last_checked_at),
            }

    def prune(self, today: date) -> None:
        """Drop throttle/dedup slots from other days and skip dates already past."""
        stamp = today.isoformat()
        for k in [k for k in self.last_checked_at if k[3] != stamp]:
            del self.last_checked_at[k]
        for k in [k for k in self.last_message if k[3] != stamp]:
            del self.last_message[k]
        with self._lock:
            self.skip_dates = {d for d in self.skip_dates if d >= today}
