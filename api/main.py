"""
FastAPI application entry point.

On startup:
  1. Build the schedule index (download / reuse the cached GTFS snapshot).
     A failure here aborts startup.
  2. Start the APScheduler poll job (every POLL_INTERVAL_SECONDS), with its
     first run due immediately.  The app serves requests while that first
     cycle is still running.

Endpoints:
  POST /snooze          suppress all checks for SNOOZE_HOURS
  POST /skip-next-day   suppress all checks tomorrow
  GET  /health
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader

from api.schemas import HealthResponse, SkipResponse, SnoozeResponse
from config import API_HOST, API_PORT, CONTROL_API_KEY, CORS_ORIGINS, LOG_LEVEL, NOTIFY_WINDOW_SECONDS, POLL_INTERVAL_SECONDS
from ingestion.gtfs_static import ScheduleProvider
from monitor.control import ControlSurface
from monitor.departures import DepartureMonitor
from monitor.state import MonitorState

logging.basicConfig(
    level=LOG_LEVEL,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

_control_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _require_control_key(key: str | None = Security(_control_key_header)) -> None:
    """
    Optional API-key guard for the control endpoints.

    If CONTROL_API_KEY is not set the endpoints are open (local network use).
    If it is set, the request must include the matching X-API-Key header.
    """
    if not CONTROL_API_KEY:
        return
    if key != CONTROL_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing X-API-Key header.")


state = MonitorState()
schedule_provider = ScheduleProvider()
monitor = DepartureMonitor(state, schedule_provider)
control = ControlSurface(state)


async def _poll_departures() -> None:
    """
    Scheduled job: one monitor cycle.

    Exceptions are caught and logged so a bad cycle cannot kill the
    scheduler; the next tick simply tries again.
    """
    try:
        sent = await monitor.run_cycle()
        if sent:
            logger.info("Cycle dispatched %d message(s).", len(sent))
    except Exception as exc:
        logger.error("Monitor cycle failed: %s", exc, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("=== Departure Watch ===")
    await schedule_provider.get_index()

    logger.info(
        "Running. Checking departures within %d minutes of scheduled time.",
        NOTIFY_WINDOW_SECONDS // 60,
    )

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _poll_departures,
        "interval",
        seconds=POLL_INTERVAL_SECONDS,
        id="departure_poll",
        next_run_time=datetime.now(),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("Scheduler started. Polling every %ds.", POLL_INTERVAL_SECONDS)

    yield

    # Shutdown
    if scheduler.running:
        scheduler.shutdown()


app = FastAPI(
    title="Departure Watch",
    description="Announces real-time delays for watched scheduled train departures.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.post("/snooze", response_model=SnoozeResponse)
async def snooze(_: None = Depends(_require_control_key)) -> SnoozeResponse:
    """Suppress all departure checks for the next SNOOZE_HOURS (default 24)."""
    until = control.snooze()
    msg = f"Checks snoozed for {control.snooze_hours} hours."
    logger.info("[HTTP] /snooze — %s", msg)
    return {"ok": True, "message": msg, "snooze_until": until.isoformat()}


@app.post("/skip-next-day", response_model=SkipResponse)
async def skip_next_day(_: None = Depends(_require_control_key)) -> SkipResponse:
    """Suppress all departure checks on the next calendar day."""
    skipped = control.skip_next_day()
    msg = f"Checks will be skipped on {skipped.isoformat()}."
    logger.info("[HTTP] /skip-next-day — %s", msg)
    return {"ok": True, "message": msg, "skipped_date": skipped.isoformat()}


@app.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """
    Liveness + data-freshness check.

    Reports whether a schedule index is loaded, its size, and the current
    snooze/skip state so operators can see why nothing is being announced.
    """
    index = schedule_provider.index
    counts = index.summary() if index else {"stops": 0, "trips": 0, "stop_times": 0, "services": 0}

    scheduler: AsyncIOScheduler | None = getattr(request.app.state, "scheduler", None)
    next_poll_at: str | None = None
    if scheduler is not None:
        job = scheduler.get_job("departure_poll")
        if job and job.next_run_time:
            next_poll_at = job.next_run_time.isoformat()

    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "schedule": {
            "loaded": index is not None,
            "loaded_at": index.loaded_at.isoformat() if index else None,
            **counts,
        },
        "monitor": {
            **state.snapshot(),
            "last_cycle_at": monitor.last_cycle_at.isoformat() if monitor.last_cycle_at else None,
            "polling_active": scheduler is not None and scheduler.running,
            "next_poll_at": next_poll_at,
        },
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
