"""Daily discovery trigger (the cron ``0 6 * * *`` equivalent) as an asyncio task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

logger = logging.getLogger(__name__)


def seconds_until(hour: int, now: datetime | None = None) -> float:
    """Seconds from ``now`` to the next ``hour``:00 UTC (always > 0)."""
    now = now or datetime.now(timezone.utc)
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyScheduler:
    def __init__(self, job: Callable[[], Awaitable[Any]], hour: int = 6) -> None:
        self.job = job
        self.hour = hour
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="discovery-scheduler")
            logger.info("Daily discovery scheduled at %02d:00 UTC", self.hour)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(seconds_until(self.hour))
            try:
                await self.job()
            except Exception:
                logger.exception("Scheduled discovery run failed")
