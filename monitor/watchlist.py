"""
Watch-list loading and validation.

The watch list is a JSON array kept at WATCHLIST_PATH, e.g.

    [
      {"source": "Penn Station", "destination": "Mineola",
       "departureTime": "08:15", "days": ["mon", "tue"],
       "users": ["alice"], "audio": true}
    ]

It is re-read every cycle so edits apply without a restart.  Records are
validated up front; a bad file fails the whole load with ConfigLoadError.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from config import WATCHLIST_PATH
from routing.matcher import hms_to_seconds

logger = logging.getLogger(__name__)

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class ConfigLoadError(RuntimeError):
    """The watch list is unreadable or invalid."""


class WatchEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    departure_time: str = Field(alias="departureTime")  # HH:MM or HH:MM:SS, may exceed 23:59
    days: list[str] | None = None   # None = every day
    users: list[str] = Field(default_factory=list)
    audio: bool = False

    @field_validator("departure_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        try:
            hms_to_seconds(v)
        except ValueError as exc:
            raise ValueError(f"departureTime must be HH:MM or HH:MM:SS, got {v!r}") from exc
        return v.strip()

    @field_validator("days")
    @classmethod
    def _check_days(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        days = [d.strip().lower() for d in v]
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"unknown day(s) {unknown}; use {', '.join(WEEKDAYS)}")
        return days

    @property
    def departure_seconds(self) -> int:
        return hms_to_seconds(self.departure_time)

    def runs_on(self, weekday: int) -> bool:
        """weekday as date.weekday(): 0 = Monday."""
        return self.days is None or WEEKDAYS[weekday] in self.days


_entries_adapter = TypeAdapter(list[WatchEntry])


def parse_watch_entries(raw: str) -> list[WatchEntry]:
    try:
        return _entries_adapter.validate_python(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise ConfigLoadError(f"Watch list is not valid JSON: {exc}") from exc
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid watch list: {exc}") from exc


def load_watch_entries(path: Path = WATCHLIST_PATH) -> list[WatchEntry]:
    """Read and validate the watch list, preserving file order."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read watch list {path}: {exc}") from exc
    entries = parse_watch_entries(raw)
    logger.debug("Loaded %d watch entries from %s.", len(entries), path)
    return entries
