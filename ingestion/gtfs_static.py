"""
Downloads, caches and indexes the GTFS static feed.

Feed contents used:
  stops.txt          → Stop
  trips.txt          → Trip
  stop_times.txt     → StopTime
  calendar.txt       → CalendarService      (optional)
  calendar_dates.txt → CalendarException    (optional)

The zip is cached in DATA_DIR and only re-downloaded once it is older than
GTFS_REFRESH_HOURS.  A re-download replaces the extracted directory
wholesale; nothing is merged across snapshots.
"""

import asyncio
import io
import logging
import shutil
import time
import zipfile
from collections import defaultdict
from datetime import date, datetime
from pathlib import Path

import httpx
import pandas as pd

from config import DATA_DIR, GTFS_REFRESH_HOURS, GTFS_STATIC_URL
from schedule.index import ScheduleIndex
from schedule.models import CalendarException, CalendarService, Stop, StopTime, Trip

logger = logging.getLogger(__name__)

GTFS_ZIP_PATH = DATA_DIR / "gtfs_static.zip"
GTFS_DIR = DATA_DIR / "gtfs_static"

_REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "stops.txt": ("stop_id", "stop_name"),
    "trips.txt": ("trip_id", "service_id"),
    "stop_times.txt": ("trip_id", "stop_id", "stop_sequence", "arrival_time", "departure_time"),
    "calendar.txt": (
        "service_id", "monday", "tuesday", "wednesday", "thursday",
        "friday", "saturday", "sunday", "start_date", "end_date",
    ),
    "calendar_dates.txt": ("service_id", "date", "exception_type"),
}
_WEEKDAY_COLUMNS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class LoadError(RuntimeError):
    """The static schedule could not be fetched, extracted or indexed."""


# ---------------------------------------------------------------------------
# Download / extraction
# ---------------------------------------------------------------------------

def is_fresh(path: Path, max_age_hours: int = GTFS_REFRESH_HOURS, now: float | None = None) -> bool:
    """True when path exists and was written less than max_age_hours ago."""
    if not path.exists():
        return False
    age = (now if now is not None else time.time()) - path.stat().st_mtime
    return age < max_age_hours * 3600


async def download_gtfs_zip(url: str = GTFS_STATIC_URL, zip_path: Path = GTFS_ZIP_PATH) -> bytes:
    """Download GTFS zip from the given URL and cache it to disk."""
    if not url:
        raise LoadError("GTFS_STATIC_URL is not configured. Set it in your .env file.")
    logger.info("Downloading GTFS static feed from %s", url)
    try:
        async with httpx.AsyncClient(timeout=60) as client:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise LoadError(f"GTFS static download failed: {exc}") from exc
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    zip_path.write_bytes(response.content)
    logger.info("Saved GTFS zip to %s (%d bytes)", zip_path, len(response.content))
    return response.content


def extract_gtfs_zip(zip_path: Path = GTFS_ZIP_PATH, extract_dir: Path = GTFS_DIR) -> None:
    """Replace extract_dir with the contents of zip_path."""
    if extract_dir.exists():
        shutil.rmtree(extract_dir)
    logger.info("Extracting GTFS static feed to %s", extract_dir)
    try:
        with zipfile.ZipFile(io.BytesIO(zip_path.read_bytes())) as zf:
            zf.extractall(extract_dir)
    except (OSError, zipfile.BadZipFile) as exc:
        # never leave a half-extracted snapshot behind
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise LoadError(f"Could not extract {zip_path}: {exc}") from exc


async def ensure_static_gtfs(
    url: str = GTFS_STATIC_URL,
    zip_path: Path = GTFS_ZIP_PATH,
    extract_dir: Path = GTFS_DIR,
    max_age_hours: int = GTFS_REFRESH_HOURS,
) -> bool:
    """
    Make sure a fresh, extracted snapshot exists on disk.  Disk work runs
    in a worker thread so the event loop keeps serving requests.

    Returns True when a new zip was downloaded, False when the cached one
    was reused.
    """
    downloaded = False
    if not is_fresh(zip_path, max_age_hours):
        await download_gtfs_zip(url, zip_path)
        downloaded = True
        if extract_dir.exists():
            await asyncio.to_thread(shutil.rmtree, extract_dir)

    if not extract_dir.exists():
        await asyncio.to_thread(extract_gtfs_zip, zip_path, extract_dir)
    return downloaded


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read(directory: Path, filename: str, required: bool = True) -> pd.DataFrame | None:
    path = directory / filename
    if not path.exists():
        if required:
            raise LoadError(f"Required GTFS file {filename} missing from {directory}")
        return None
    try:
        df = pd.read_csv(path, dtype=str).fillna("")
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise LoadError(f"Could not read {filename}: {exc}") from exc

    df.columns = [c.strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].str.strip()
    missing = [c for c in _REQUIRED_COLUMNS[filename] if c not in df.columns]
    if missing:
        raise LoadError(f"{filename} is missing column(s): {', '.join(missing)}")
    return df


def _gtfs_date(value: str) -> date:
    return datetime.strptime(value.strip(), "%Y%m%d").date()


def load_static_gtfs(directory: Path = GTFS_DIR) -> ScheduleIndex:
    """
    Parse an extracted GTFS directory into a ScheduleIndex.

    Nothing is returned unless every table parsed cleanly; any failure
    raises LoadError.
    """
    logger.info("Loading static GTFS from %s", directory)
    stops = _read(directory, "stops.txt")
    trips = _read(directory, "trips.txt")
    stop_times = _read(directory, "stop_times.txt")
    calendar = _read(directory, "calendar.txt", required=False)
    calendar_dates = _read(directory, "calendar_dates.txt", required=False)

    try:
        index = ScheduleIndex(
            stops_by_name=_index_stops_by_name(stops),
            stops_by_id={
                row.stop_id: Stop(row.stop_id, row.stop_name)
                for row in stops.itertuples(index=False)
            },
            stop_times_by_trip=_index_stop_times(stop_times),
            trips_by_id={
                row.trip_id: Trip(row.trip_id, row.service_id)
                for row in trips.itertuples(index=False)
            },
            calendar_by_service=_index_calendar(calendar),
            exceptions_by_service=_index_calendar_dates(calendar_dates),
        )
    except ValueError as exc:
        raise LoadError(f"Malformed GTFS data in {directory}: {exc}") from exc

    counts = index.summary()
    logger.info(
        "Loaded %d stops | %d stop_times | %d trips | %d services.",
        counts["stops"], counts["stop_times"], counts["trips"], counts["services"],
    )
    return index


def _index_stops_by_name(df: pd.DataFrame) -> dict[str, list[Stop]]:
    by_name: dict[str, list[Stop]] = defaultdict(list)
    for row in df.itertuples(index=False):
        by_name[row.stop_name.lower()].append(Stop(row.stop_id, row.stop_name))
    return dict(by_name)


def _index_stop_times(df: pd.DataFrame) -> dict[str, list[StopTime]]:
    df = df.assign(stop_sequence=pd.to_numeric(df["stop_sequence"], errors="raise").astype(int))
    df = df.sort_values(["trip_id", "stop_sequence"], kind="stable")
    by_trip: dict[str, list[StopTime]] = defaultdict(list)
    for row in df.itertuples(index=False):
        by_trip[row.trip_id].append(StopTime(
            trip_id=row.trip_id,
            stop_id=row.stop_id,
            stop_sequence=int(row.stop_sequence),
            arrival_time=row.arrival_time,
            departure_time=row.departure_time,
        ))
    return dict(by_trip)


def _index_calendar(df: pd.DataFrame | None) -> dict[str, CalendarService]:
    if df is None:
        return {}
    services: dict[str, CalendarService] = {}
    for _, row in df.iterrows():
        services[row["service_id"]] = CalendarService(
            service_id=row["service_id"],
            weekdays=tuple(row[day].strip() == "1" for day in _WEEKDAY_COLUMNS),
            start_date=_gtfs_date(row["start_date"]),
            end_date=_gtfs_date(row["end_date"]),
        )
    return services


def _index_calendar_dates(df: pd.DataFrame | None) -> dict[str, list[CalendarException]]:
    if df is None:
        return {}
    by_service: dict[str, list[CalendarException]] = defaultdict(list)
    for _, row in df.iterrows():
        by_service[row["service_id"]].append(CalendarException(
            service_id=row["service_id"],
            date=_gtfs_date(row["date"]),
            exception_type=int(row["exception_type"]),
        ))
    return dict(by_service)


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class ScheduleProvider:
    """
    Hands out the current ScheduleIndex, refreshing the snapshot first.

    The index is rebuilt whenever the zip on disk differs (by mtime) from the
    one the current index was built from, or nothing has been built yet.
    If a rebuild fails the previous index is left untouched, LoadError
    propagates to the caller, and the next call tries the rebuild again.
    Parsing runs in a worker thread.
    """

    def __init__(
        self,
        url: str = GTFS_STATIC_URL,
        zip_path: Path = GTFS_ZIP_PATH,
        extract_dir: Path = GTFS_DIR,
        max_age_hours: int = GTFS_REFRESH_HOURS,
    ) -> None:
        self.url = url
        self.zip_path = zip_path
        self.extract_dir = extract_dir
        self.max_age_hours = max_age_hours
        self._index: ScheduleIndex | None = None
        self._built_from: float | None = None  # zip mtime behind _index

    @property
    def index(self) -> ScheduleIndex | None:
        return self._index

    async def get_index(self) -> ScheduleIndex:
        await ensure_static_gtfs(
            self.url, self.zip_path, self.extract_dir, self.max_age_hours,
        )
        snapshot = self.zip_path.stat().st_mtime
        if self._index is None or snapshot != self._built_from:
            self._index = await asyncio.to_thread(load_static_gtfs, self.extract_dir)
            self._built_from = snapshot
        return self._index
