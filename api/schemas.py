from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# POST /snooze, POST /skip-next-day
# ---------------------------------------------------------------------------

class SnoozeResponse(BaseModel):
    ok: bool
    message: str
    snooze_until: str = Field(serialization_alias="snoozeUntil")   # ISO 8601 timestamp


class SkipResponse(BaseModel):
    ok: bool
    message: str
    skipped_date: str = Field(serialization_alias="skippedDate")   # ISO 8601 date


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

class ScheduleStats(BaseModel):
    loaded: bool
    loaded_at: str | None
    stops: int
    trips: int
    stop_times: int
    services: int


class MonitorStats(BaseModel):
    snooze_until: str | None
    skip_dates: list[str]
    tracked_departures: int
    last_cycle_at: str | None
    polling_active: bool
    next_poll_at: str | None


class HealthResponse(BaseModel):
    status: Literal["ok"]
    timestamp: str
    schedule: ScheduleStats
    monitor: MonitorStats
