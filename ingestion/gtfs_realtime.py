"""
Fetches the GTFS-Realtime trip-updates feed and answers delay lookups.

The feed is fetched fresh for every departure check; nothing is cached
between checks.  Decoded entities are reduced to the fields the monitor
needs (trip_id, per-stop arrival/departure delay).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

import httpx
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from config import GTFS_RT_API_KEY, GTFS_RT_URL

logger = logging.getLogger(__name__)


class FeedFetchError(RuntimeError):
    """The realtime feed could not be downloaded or decoded."""


@dataclass
class StopTimeDelay:
    stop_id: str
    departure_delay: int | None = None  # seconds; positive = late, negative = early
    arrival_delay: int | None = None


@dataclass
class TripUpdateState:
    trip_id: str
    stop_time_updates: list[StopTimeDelay] = field(default_factory=list)


@dataclass
class FeedSnapshot:
    trip_updates: list[TripUpdateState] = field(default_factory=list)
    header_timestamp: int | None = None
    fetched_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class DelayInfo:
    found: bool
    delay_seconds: int = 0


def parse_feed(content: bytes) -> FeedSnapshot:
    """Decode a protobuf FeedMessage into a FeedSnapshot."""
    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(content)
    except DecodeError as exc:
        raise FeedFetchError(f"Could not decode realtime feed: {exc}") from exc

    updates: list[TripUpdateState] = []
    for entity in feed.entity:
        if not entity.HasField("trip_update"):
            continue
        tu = entity.trip_update
        stops: list[StopTimeDelay] = []
        for stu in tu.stop_time_update:
            dep = stu.departure.delay if stu.HasField("departure") and stu.departure.HasField("delay") else None
            arr = stu.arrival.delay if stu.HasField("arrival") and stu.arrival.HasField("delay") else None
            stops.append(StopTimeDelay(stop_id=stu.stop_id, departure_delay=dep, arrival_delay=arr))

        updates.append(TripUpdateState(
            trip_id=tu.trip.trip_id,
            stop_time_updates=stops,
        ))

    timestamp = feed.header.timestamp if feed.header.HasField("timestamp") else None
    return FeedSnapshot(trip_updates=updates, header_timestamp=timestamp)


async def fetch_realtime_feed(url: str = GTFS_RT_URL, api_key: str = GTFS_RT_API_KEY) -> FeedSnapshot:
    """
    Fetch and decode the trip-updates feed.

    Raises FeedFetchError on any network, HTTP or decode failure; the
    caller treats that as one failed check.
    """
    if not url:
        raise FeedFetchError("GTFS_RT_URL is not configured. Set it in your .env file.")
    logger.info("Fetching real-time feed...")
    headers = {"Accept": "application/x-protobuf"}
    if api_key:
        headers["x-api-key"] = api_key
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.get(url, headers=headers, follow_redirects=True)
            response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FeedFetchError(str(exc) or exc.__class__.__name__) from exc

    snapshot = parse_feed(response.content)
    logger.debug("Decoded %d trip updates.", len(snapshot.trip_updates))
    return snapshot


def get_trip_delay(feed: FeedSnapshot, trip_id: str, stop_id: str) -> DelayInfo:
    """
    Delay for trip_id at stop_id.

    A trip present in the feed without an update for stop_id counts as on
    time (found=True, delay 0).  A trip absent from the feed gives
    found=False.
    """
    for tu in feed.trip_updates:
        if tu.trip_id != trip_id:
            continue
        for stu in tu.stop_time_updates:
            if stu.stop_id != stop_id:
                continue
            if stu.departure_delay is not None:
                return DelayInfo(found=True, delay_seconds=stu.departure_delay)
            if stu.arrival_delay is not None:
                return DelayInfo(found=True, delay_seconds=stu.arrival_delay)
            return DelayInfo(found=True, delay_seconds=0)
        return DelayInfo(found=True, delay_seconds=0)
    return DelayInfo(found=False, delay_seconds=0)


def format_delay(delay_seconds: int) -> str:
    """Human wording for a delay: "on time", "1 minute late", "2 minutes early"."""
    if abs(delay_seconds) < 60:
        return "on time"
    # half-up, not round()'s half-to-even
    minutes = int(abs(delay_seconds) / 60 + 0.5)
    label = f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{label} late" if delay_seconds > 0 else f"{label} early"
