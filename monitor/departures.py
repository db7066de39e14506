"""
The departure monitor: one poll cycle per POLL_INTERVAL_SECONDS.

Per cycle:
  1. Global gate — snoozed, or today is a skip date → nothing is checked.
  2. Load the schedule index and the watch list; failure skips the cycle.
  3. For each watch entry, in list order:
       - skip if today is not one of its days
       - skip unless departure is 0..NOTIFY_WINDOW_SECONDS away
       - skip if the same departure was checked < CHECK_THROTTLE_SECONDS ago
       - match trips, fetch the realtime feed, build the status message
       - successful messages identical to the last one are not re-sent;
         error messages (including unexpected exceptions from the check)
         are always sent
       - a status counts as sent only once notify() returned
  4. Play queued audio announcements.
  5. Prune per-day state (runs even when steps 1–4 bail out).

run_cycle() takes an optional `now` so tests can drive it with a fixed clock.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Awaitable, Callable

from config import CHECK_THROTTLE_SECONDS, NOTIFY_WINDOW_SECONDS
from ingestion.gtfs_realtime import FeedFetchError, FeedSnapshot, fetch_realtime_feed, format_delay, get_trip_delay
from ingestion.gtfs_static import LoadError, ScheduleProvider
from monitor.state import DepartureKey, MonitorState
from monitor.watchlist import ConfigLoadError, WatchEntry, load_watch_entries
from notify.audio import announce
from notify.push import post_notification
from routing.matcher import NoStopsFoundError, find_matching_trips, hms_to_seconds
from schedule.index import ScheduleIndex

logger = logging.getLogger(__name__)

AnnounceFn = Callable[[str, bool], Awaitable[None]]
NotifyFn = Callable[[str, list[str]], Awaitable[None]]


@dataclass(frozen=True)
class CheckResult:
    success: bool
    message: str


def departure_key(entry: WatchEntry, today: date) -> DepartureKey:
    return (entry.source, entry.destination, entry.departure_time, today.isoformat())


def seconds_since_midnight(now: datetime) -> int:
    return now.hour * 3600 + now.minute * 60 + now.second


def clock_label(hms: str) -> str:
    """'08:15:00' → '8:15 AM'; post-midnight GTFS times wrap ('25:10:00' → '1:10 AM')."""
    secs = hms_to_seconds(hms)
    h, m = (secs // 3600) % 24, (secs % 3600) // 60
    suffix = "AM" if h < 12 else "PM"
    return f"{h % 12 or 12}:{m:02d} {suffix}"


class DepartureMonitor:
    def __init__(
        self,
        state: MonitorState,
        schedule: ScheduleProvider,
        load_entries: Callable[[], list[WatchEntry]] = load_watch_entries,
        fetch_feed: Callable[[], Awaitable[FeedSnapshot]] = fetch_realtime_feed,
        announce_fn: AnnounceFn = announce,
        notify_fn: NotifyFn = post_notification,
        clock: Callable[[], datetime] = datetime.now,
        notify_window_seconds: int = NOTIFY_WINDOW_SECONDS,
        throttle_seconds: int = CHECK_THROTTLE_SECONDS,
    ) -> None:
        self.state = state
        self.schedule = schedule
        self.load_entries = load_entries
        self.fetch_feed = fetch_feed
        self.announce = announce_fn
        self.notify = notify_fn
        self.clock = clock
        self.notify_window_seconds = notify_window_seconds
        self.throttle_seconds = throttle_seconds
        self.last_cycle_at: datetime | None = None

    async def run_cycle(self, now: datetime | None = None) -> list[str]:
        """Run one poll cycle. Returns the messages dispatched, in order."""
        now = now or self.clock()
        today = now.date()
        self.last_cycle_at = now
        try:
            return await self._run_checks(now, today)
        finally:
            self.state.prune(today)

    async def _run_checks(self, now: datetime, today: date) -> list[str]:
        reason = self.state.gate_reason(now)
        if reason:
            logger.info("%s Skipping.", reason)
            return []

        try:
            index = await self.schedule.get_index()
        except LoadError as exc:
            logger.error("Failed to load static GTFS: %s", exc)
            return []

        try:
            entries = self.load_entries()
        except ConfigLoadError as exc:
            logger.error("Failed to load watch list: %s", exc)
            return []

        now_secs = seconds_since_midnight(now)
        dispatched: list[str] = []
        announcements: list[tuple[str, bool]] = []

        for entry in entries:
            if not entry.runs_on(today.weekday()):
                continue

            secs_until = entry.departure_seconds - now_secs
            if secs_until < 0 or secs_until > self.notify_window_seconds:
                continue

            key = departure_key(entry, today)
            last = self.state.last_checked_at.get(key)
            if last is not None and (now - last).total_seconds() < self.throttle_seconds:
                continue
            self.state.last_checked_at[key] = now

            try:
                result = await self.check_departure(entry, index, today)
            except Exception as exc:
                logger.error(
                    "Check failed for %s → %s: %s", entry.source, entry.destination, exc, exc_info=True,
                )
                result = CheckResult(success=False, message=f"Error checking departure: {exc}")

            if result.success and self.state.last_message.get(key) == result.message:
                logger.debug("Unchanged status for %s → %s; not re-sent.", entry.source, entry.destination)
                continue

            try:
                await self.notify(result.message, entry.users)
            except Exception as exc:
                # not recorded, so the next check after the throttle retries it
                logger.error("Dispatch failed for %s → %s: %s", entry.source, entry.destination, exc)
                continue

            if result.success:
                self.state.last_message[key] = result.message
            announcements.append((result.message, entry.audio))
            dispatched.append(result.message)

        for message, audio in announcements:
            await self.announce(message, audio)

        return dispatched

    async def check_departure(self, entry: WatchEntry, index: ScheduleIndex, today: date) -> CheckResult:
        logger.info("[CHECK] %s → %s at %s", entry.source, entry.destination, entry.departure_time)

        try:
            trips = find_matching_trips(
                entry.source, entry.destination, entry.departure_seconds, today, index,
            )
        except NoStopsFoundError as exc:
            msg = f"Error finding trips: {exc}"
            logger.error(msg)
            return CheckResult(success=False, message=msg)

        if not trips:
            return CheckResult(
                success=True,
                message=(
                    f"No scheduled train found from {entry.source} to "
                    f"{entry.destination} at {entry.departure_time} today."
                ),
            )

        try:
            feed = await self.fetch_feed()
        except FeedFetchError as exc:
            msg = f"Could not fetch real-time data: {exc}"
            logger.error(msg)
            return CheckResult(success=False, message=msg)

        lines = []
        for trip in trips:
            delay = get_trip_delay(feed, trip.trip_id, trip.origin_stop_id)
            if not delay.found:
                logger.debug("Trip %s not in realtime feed; reporting on time.", trip.trip_id)
            lines.append(
                f"{clock_label(trip.scheduled_departure)} train, from {trip.origin_name} "
                f"to {trip.destination_name}, is {format_delay(delay.delay_seconds)}."
            )
        return CheckResult(success=True, message="\n".join(lines))
