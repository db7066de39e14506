"""Snooze / skip-next-day operations behind the HTTP control endpoints."""

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from config import SNOOZE_HOURS
from monitor.state import MonitorState

logger = logging.getLogger(__name__)


class ControlSurface:
    def __init__(
        self,
        state: MonitorState,
        clock: Callable[[], datetime] = datetime.now,
        snooze_hours: int = SNOOZE_HOURS,
    ) -> None:
        self.state = state
        self.clock = clock
        self.snooze_hours = snooze_hours

    def snooze(self) -> datetime:
        """Suppress all checks for snooze_hours from now. Re-snoozing restarts the window."""
        until = self.state.snooze(self.clock(), self.snooze_hours)
        logger.info("[SNOOZE] Checks snoozed until %s.", until.isoformat(timespec="seconds"))
        return until

    def skip_next_day(self) -> date:
        """Suppress all checks tomorrow."""
        tomorrow = self.clock().date() + timedelta(days=1)
        self.state.skip(tomorrow)
        logger.info("[SKIP] Checks will be skipped on %s.", tomorrow.isoformat())
        return tomorrow
