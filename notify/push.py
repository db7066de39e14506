"""
Push-notification delivery.

Posts each status message to NOTIFY_URL once per configured user as
{"message": ..., "user": ...}.  Delivery is best-effort: failures are
logged here and never raised to the monitor.
"""

import logging

import httpx

from config import NOTIFY_URL

logger = logging.getLogger(__name__)


async def post_notification(message: str, users: list[str] | None, url: str = NOTIFY_URL) -> None:
    """Send message to every user; a no-op without a URL or users."""
    if not url or not users:
        return

    async with httpx.AsyncClient(timeout=15.0) as client:
        for user in users:
            try:
                resp = await client.post(url, json={"message": message, "user": user})
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Notification failed for user=%r: HTTP %d", user, exc.response.status_code
                )
                continue
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.error("Notification failed for user=%r: %s", user, exc)
                continue
            logger.info('Notification sent → user="%s"', user)
